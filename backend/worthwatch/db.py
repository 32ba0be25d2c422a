import logging
from functools import lru_cache

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from worthwatch.core.config import get_settings
from worthwatch.repositories.indexes import table_definition

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_dynamodb_resource():
    """Process-wide DynamoDB resource with bounded per-call timeouts"""
    settings = get_settings()
    kwargs = {
        "region_name": settings.AWS_REGION,
        "config": Config(
            connect_timeout=settings.STORE_CONNECT_TIMEOUT,
            read_timeout=settings.STORE_READ_TIMEOUT,
            retries={"max_attempts": settings.STORE_MAX_ATTEMPTS, "mode": "standard"},
        ),
    }
    # Only use endpoint_url for LocalStack / DynamoDB Local
    if settings.DYNAMODB_ENDPOINT:
        kwargs["endpoint_url"] = settings.DYNAMODB_ENDPOINT
        logger.info(f"Using DynamoDB endpoint {settings.DYNAMODB_ENDPOINT}")
    return boto3.resource("dynamodb", **kwargs)


def get_table():
    """Dependency to get the single application table"""
    return get_dynamodb_resource().Table(get_settings().DDB_TABLE_NAME)


def create_table(dynamodb, table_name: str):
    """Create the table with every secondary index; no-op if it exists"""
    try:
        table = dynamodb.create_table(**table_definition(table_name))
    except ClientError as e:
        if e.response["Error"]["Code"] == "ResourceInUseException":
            logger.info(f"Table {table_name} already exists")
            return dynamodb.Table(table_name)
        raise
    table.wait_until_exists()
    logger.info(f"Created table {table_name}")
    return table
