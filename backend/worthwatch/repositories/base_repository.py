import base64
import binascii
import json
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Generic, Iterator, List, Optional, Tuple, Type, TypeVar

from boto3.dynamodb.conditions import Key
from botocore.exceptions import (
    BotoCoreError, ClientError, ConnectTimeoutError, EndpointConnectionError, ReadTimeoutError
)

from worthwatch.core.exceptions import (
    BaseAppException, NotFoundException, AlreadyExistsException, StoreException,
    StoreUnavailableException, ValidationException
)
from worthwatch.core.enums import EntityType
from worthwatch.models.registry import StoredEntity, entity_from_item
from worthwatch.repositories.indexes import TABLE_PARTITION_KEY, TABLE_SORT_KEY, TYPE_INDEX, SecondaryIndex

logger = logging.getLogger(__name__)

EntityT = TypeVar("EntityT", bound=StoredEntity)
ItemKey = Dict[str, Any]

# Error codes worth retrying with backoff
TRANSIENT_ERROR_CODES = frozenset({
    "ProvisionedThroughputExceededException",
    "ThrottlingException",
    "RequestLimitExceeded",
    "InternalServerError",
    "ServiceUnavailable",
    "TransactionConflictException",
})
IMMUTABLE_ATTRIBUTES = frozenset({"PK", "SK", "entityType", "createdAt", "updatedAt"})
BATCH_GET_LIMIT = 100
BATCH_GET_MAX_ATTEMPTS = 5


def current_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class Page(Generic[EntityT]):
    """One page of results plus the cursor for the next one"""
    items: List[EntityT] = field(default_factory=list)
    cursor: Optional[str] = None

    def to_public(self) -> Dict[str, Any]:
        return {"items": [entity.to_public() for entity in self.items], "cursor": self.cursor}


def encode_cursor(last_key: Optional[ItemKey]) -> Optional[str]:
    if not last_key:
        return None
    raw = json.dumps(python_dict(last_key), sort_keys=True).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii")


def cursor_attributes(index: Optional[SecondaryIndex] = None) -> frozenset:
    """Key attributes a cursor must carry to resume a query on ``index``"""
    names = {TABLE_PARTITION_KEY, TABLE_SORT_KEY}
    if index is not None:
        names.add(index.partition_key)
        if index.sort_key:
            names.add(index.sort_key)
    return frozenset(names)


def decode_cursor(cursor: Optional[str], index: Optional[SecondaryIndex] = None) -> Optional[ItemKey]:
    if not cursor:
        return None
    try:
        decoded = json.loads(base64.urlsafe_b64decode(cursor.encode("ascii")))
    except (ValueError, binascii.Error):
        raise ValidationException("Invalid pagination cursor")
    if not isinstance(decoded, dict) or set(decoded) != cursor_attributes(index):
        raise ValidationException("Invalid pagination cursor")
    if not all(isinstance(value, str) and value for value in decoded.values()):
        raise ValidationException("Invalid pagination cursor")
    return decoded


class BaseRepository(Generic[EntityT]):
    """Single-table CRUD primitives shared by the entity repositories.

    Rows are decoded by their ``entityType`` tag through the entity registry,
    so a query over a shared partition yields the right model per row.
    Driver exceptions never escape: transient failures become
    StoreUnavailableException, everything else StoreException.
    """

    def __init__(self, model: Type[EntityT], table, clock: Callable[[], str] = current_timestamp):
        self.model = model
        self.table = table
        self.clock = clock

    @property
    def entity_name(self) -> str:
        return self.model.__name__

    @contextmanager
    def _store_call(self, operation: str, on_condition_failed: Optional[Callable[[], BaseAppException]] = None):
        try:
            yield
        except ClientError as e:
            error_code = e.response["Error"]["Code"]
            error_msg = e.response["Error"].get("Message", "")
            if error_code == "ConditionalCheckFailedException" and on_condition_failed is not None:
                raise on_condition_failed() from e
            if error_code in TRANSIENT_ERROR_CODES:
                logger.error(f"Store unavailable during {operation} {self.entity_name}: {error_code}")
                raise StoreUnavailableException() from e
            logger.error(f"Failed to {operation} {self.entity_name}: {error_code} - {error_msg}")
            raise StoreException(f"Failed to {operation} {self.entity_name}") from e
        except (ConnectTimeoutError, ReadTimeoutError, EndpointConnectionError) as e:
            logger.error(f"Store timeout during {operation} {self.entity_name}: {str(e)}")
            raise StoreUnavailableException() from e
        except BotoCoreError as e:
            logger.error(f"Store client error during {operation} {self.entity_name}: {str(e)}")
            raise StoreException(f"Failed to {operation} {self.entity_name}") from e

    def _decode(self, item: Dict[str, Any]) -> EntityT:
        return entity_from_item(python_dict(item))

    def stored_attributes(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Map model field names to their stored camelCase attribute names"""
        attributes = {}
        for name, value in fields.items():
            info = self.model.model_fields.get(name)
            if info is None:
                raise ValidationException(f"Unknown {self.entity_name} attribute: {name}")
            if isinstance(value, Enum):
                value = value.value
            attributes[info.alias or name] = value
        return attributes

    def get(self, pk: str, sk: str, consistent_read: bool = False) -> Optional[EntityT]:
        """Get a row by its exact address"""
        with self._store_call("get"):
            response = self.table.get_item(Key={"PK": pk, "SK": sk}, ConsistentRead=consistent_read)
        item = response.get("Item")
        return self._decode(item) if item else None

    def put(self, entity: EntityT) -> Optional[EntityT]:
        """Unconditional upsert; returns the row it replaced, if any"""
        with self._store_call("put"):
            response = self.table.put_item(Item=dynamodb_dict(entity.to_item()), ReturnValues="ALL_OLD")
        previous = response.get("Attributes")
        return self._decode(previous) if previous else None

    def create(self, entity: EntityT) -> EntityT:
        """Put that fails with AlreadyExistsException if the address is taken"""
        key = entity.key()
        with self._store_call(
            "create",
            on_condition_failed=lambda: AlreadyExistsException(f"{self.entity_name} already exists"),
        ):
            self.table.put_item(
                Item=dynamodb_dict(entity.to_item()),
                ConditionExpression="attribute_not_exists(PK)",
            )
        logger.info(f"Created {self.entity_name} at {key['PK']} / {key['SK']}")
        return entity

    def update(self, pk: str, sk: str, attributes: Dict[str, Any]) -> EntityT:
        """Partial update of the given attributes plus ``updatedAt``.

        Never creates a row: a missing address raises NotFoundException.
        ``None`` values are written as explicit nulls.
        """
        names = {"#updatedAt": "updatedAt"}
        values = {":updatedAt": self.clock()}
        assignments = ["#updatedAt = :updatedAt"]
        for index, (name, value) in enumerate(attributes.items()):
            if name in IMMUTABLE_ATTRIBUTES:
                raise ValidationException(f"Attribute {name} cannot be updated")
            names[f"#attr{index}"] = name
            values[f":val{index}"] = dynamodb_value(value)
            assignments.append(f"#attr{index} = :val{index}")

        with self._store_call(
            "update",
            on_condition_failed=lambda: NotFoundException(f"{self.entity_name} not found"),
        ):
            response = self.table.update_item(
                Key={"PK": pk, "SK": sk},
                UpdateExpression="SET " + ", ".join(assignments),
                ConditionExpression="attribute_exists(PK)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        return self._decode(response["Attributes"])

    def delete(self, pk: str, sk: str) -> bool:
        """Idempotent delete; returns whether a row was actually removed"""
        with self._store_call("delete"):
            response = self.table.delete_item(Key={"PK": pk, "SK": sk}, ReturnValues="ALL_OLD")
        return bool(response.get("Attributes"))

    def increment_counter(self, pk: str, sk: str, attribute: str, delta: int) -> int:
        """Atomic ADD on an existing row; returns the new value.

        Not safe to blindly retry after an ambiguous timeout: the store may
        already have applied the delta.
        """
        with self._store_call(
            "update counter of",
            on_condition_failed=lambda: NotFoundException(f"{self.entity_name} not found"),
        ):
            response = self.table.update_item(
                Key={"PK": pk, "SK": sk},
                UpdateExpression="ADD #counter :delta SET #updatedAt = :updatedAt",
                ConditionExpression="attribute_exists(PK)",
                ExpressionAttributeNames={"#counter": attribute, "#updatedAt": "updatedAt"},
                ExpressionAttributeValues={":delta": delta, ":updatedAt": self.clock()},
                ReturnValues="UPDATED_NEW",
            )
        return int(response["Attributes"][attribute])

    def decrement_counter(self, pk: str, sk: str, attribute: str, delta: int = 1) -> int:
        return self.increment_counter(pk, sk, attribute, -abs(delta))

    def _query_raw(self, key_condition, index: Optional[SecondaryIndex] = None, filter_expression=None,
                   limit: Optional[int] = None, scan_forward: bool = True,
                   start_key: Optional[ItemKey] = None) -> Tuple[List[Dict[str, Any]], Optional[ItemKey]]:
        kwargs: Dict[str, Any] = {
            "KeyConditionExpression": key_condition,
            "ScanIndexForward": scan_forward,
        }
        if index is not None:
            kwargs["IndexName"] = index.name
        if filter_expression is not None:
            kwargs["FilterExpression"] = filter_expression
        if limit:
            kwargs["Limit"] = limit
        if start_key:
            kwargs["ExclusiveStartKey"] = start_key
        with self._store_call("query"):
            response = self.table.query(**kwargs)
        return response.get("Items", []), response.get("LastEvaluatedKey")

    def _materialize(self, items: List[Dict[str, Any]], index: Optional[SecondaryIndex]) -> List[EntityT]:
        if index is not None and index.projection == "KEYS_ONLY":
            return self.batch_get([{"PK": item["PK"], "SK": item["SK"]} for item in items])
        return [self._decode(item) for item in items]

    def query(self, key_condition, index: Optional[SecondaryIndex] = None, filter_expression=None,
              limit: Optional[int] = None, scan_forward: bool = True) -> Iterator[EntityT]:
        """Lazily page through a query, yielding at most ``limit`` entities.

        ``filter_expression`` only refines what the key condition already
        narrowed; rows from key-only indexes are hydrated with batch gets.
        """
        page_size = limit if filter_expression is None else None
        start_key = None
        yielded = 0
        while True:
            items, start_key = self._query_raw(
                key_condition, index, filter_expression, page_size, scan_forward, start_key
            )
            for entity in self._materialize(items, index):
                yield entity
                yielded += 1
                if limit and yielded >= limit:
                    return
            if not start_key:
                return

    def query_page(self, key_condition, index: Optional[SecondaryIndex] = None, filter_expression=None,
                   limit: int = 20, scan_forward: bool = True, cursor: Optional[str] = None) -> Page[EntityT]:
        """Fetch one page; pass the returned cursor back to continue"""
        items, last_key = self._query_raw(
            key_condition, index, filter_expression, limit, scan_forward, decode_cursor(cursor, index)
        )
        return Page(items=self._materialize(items, index), cursor=encode_cursor(last_key))

    def _type_condition(self):
        return Key(TYPE_INDEX.partition_key).eq(EntityType(self.model.ENTITY_TYPE).value)

    def list_by_type(self, limit: int = 20, cursor: Optional[str] = None) -> Page[EntityT]:
        """Newest-first page of every row of this repository's entity kind"""
        return self.query_page(self._type_condition(), index=TYPE_INDEX, limit=limit,
                               scan_forward=False, cursor=cursor)

    def filter_by_type(self, predicate: Callable[[EntityT], bool], limit: Optional[int] = None,
                       filter_expression=None) -> List[EntityT]:
        """Walk this kind through the type index, keeping rows that match.

        Linear in the kind's population; the only place un-indexed lookups
        are resolved.
        """
        matches = []
        for entity in self.query(self._type_condition(), index=TYPE_INDEX,
                                 filter_expression=filter_expression, scan_forward=False):
            if predicate(entity):
                matches.append(entity)
                if limit and len(matches) >= limit:
                    break
        return matches

    def batch_get(self, keys: List[ItemKey]) -> List[EntityT]:
        """Fetch full rows for the given keys, preserving their order"""
        found: Dict[Tuple[str, str], Dict[str, Any]] = {}
        client = self.table.meta.client
        for start in range(0, len(keys), BATCH_GET_LIMIT):
            chunk = keys[start:start + BATCH_GET_LIMIT]
            request = {self.table.name: {"Keys": list(chunk)}}
            attempt = 0
            while request:
                with self._store_call("batch get"):
                    response = client.batch_get_item(RequestItems=request)
                for item in response.get("Responses", {}).get(self.table.name, []):
                    found[(item["PK"], item["SK"])] = item
                request = response.get("UnprocessedKeys") or None
                attempt += 1
                if request and attempt >= BATCH_GET_MAX_ATTEMPTS:
                    logger.error(f"Unprocessed keys remain after {attempt} batch get attempts")
                    raise StoreUnavailableException()
                if request:
                    time.sleep(0.05 * (2 ** attempt))
        return [
            self._decode(found[(key["PK"], key["SK"])])
            for key in keys
            if (key["PK"], key["SK"]) in found
        ]


# ============= HELPER FUNCTIONS =============

def dynamodb_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """Convert Python dict to DynamoDB compatible dict (handles Decimal)"""
    return {k: dynamodb_value(v) for k, v in data.items()}


def dynamodb_value(value: Any) -> Any:
    """Convert Python value to DynamoDB compatible value"""
    if isinstance(value, float):
        return Decimal(str(value))
    elif isinstance(value, dict):
        return {k: dynamodb_value(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [dynamodb_value(item) for item in value]
    return value


def python_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """Convert DynamoDB dict to Python dict (handles Decimal)"""
    return {k: python_value(v) for k, v in data.items()}


def python_value(value: Any) -> Any:
    """Convert DynamoDB value to Python value"""
    if isinstance(value, Decimal):
        return int(value) if value % 1 == 0 else float(value)
    elif isinstance(value, dict):
        return {k: python_value(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [python_value(item) for item in value]
    return value
