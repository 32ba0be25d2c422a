"""Secondary index plan for the single table.

Every index trades write cost for one read pattern:

GSI1  email                      -> UserRepository.get_by_email
GSI2  curatorId + createdAt      -> WatchlistRepository.list_by_curator
GSI3  isPublicStr + createdAt    -> WatchlistRepository.list_public
GSI4  entityType + createdAt     -> list_all, catalog filters, like listings
                                    (keys only; full rows are batch-fetched)

Title search, genre/tag/status filters and like listings have no index of
their own. They are narrowed by GSI4 to one entity kind and filtered
afterwards, which is linear in that kind's population.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional

TABLE_PARTITION_KEY = "PK"
TABLE_SORT_KEY = "SK"


@dataclass(frozen=True)
class SecondaryIndex:
    name: str
    partition_key: str
    sort_key: Optional[str] = None
    projection: str = "ALL"

    def key_schema(self) -> List[Dict[str, str]]:
        schema = [{"AttributeName": self.partition_key, "KeyType": "HASH"}]
        if self.sort_key:
            schema.append({"AttributeName": self.sort_key, "KeyType": "RANGE"})
        return schema

    def definition(self) -> Dict:
        return {
            "IndexName": self.name,
            "KeySchema": self.key_schema(),
            "Projection": {"ProjectionType": self.projection},
        }


EMAIL_INDEX = SecondaryIndex("GSI1", "email")
CURATOR_INDEX = SecondaryIndex("GSI2", "curatorId", "createdAt")
VISIBILITY_INDEX = SecondaryIndex("GSI3", "isPublicStr", "createdAt")
TYPE_INDEX = SecondaryIndex("GSI4", "entityType", "createdAt", projection="KEYS_ONLY")

ALL_INDEXES = (EMAIL_INDEX, CURATOR_INDEX, VISIBILITY_INDEX, TYPE_INDEX)


def table_definition(table_name: str) -> Dict:
    """Arguments for ``create_table`` describing the table and its indexes"""
    attributes = {TABLE_PARTITION_KEY, TABLE_SORT_KEY}
    for index in ALL_INDEXES:
        attributes.add(index.partition_key)
        if index.sort_key:
            attributes.add(index.sort_key)
    return {
        "TableName": table_name,
        "KeySchema": [
            {"AttributeName": TABLE_PARTITION_KEY, "KeyType": "HASH"},
            {"AttributeName": TABLE_SORT_KEY, "KeyType": "RANGE"},
        ],
        "AttributeDefinitions": [
            {"AttributeName": name, "AttributeType": "S"} for name in sorted(attributes)
        ],
        "GlobalSecondaryIndexes": [index.definition() for index in ALL_INDEXES],
        "BillingMode": "PAY_PER_REQUEST",
    }
