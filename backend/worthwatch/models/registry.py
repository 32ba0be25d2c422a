"""Tagged-variant registry for the entities sharing the table.

Each entity kind declares how its key is built; the generic repository looks
the definition up by the stored ``entityType`` tag.
"""
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Dict, FrozenSet, Type

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from worthwatch.core.enums import EntityType
from worthwatch.core.exceptions import MalformedKeyException

# Attributes that exist only for addressing and indexing, never in responses
INTERNAL_ATTRIBUTES = frozenset({"PK", "SK", "entityType", "isPublicStr"})


class StoredEntity(BaseModel):
    """Common shape of every row: camelCase attributes plus timestamps"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        validate_default=True,
    )

    ENTITY_TYPE: ClassVar[EntityType]
    # Written even when None so that an explicit null survives the round trip
    NULLABLE_ATTRIBUTES: ClassVar[FrozenSet[str]] = frozenset()

    created_at: str
    updated_at: str

    def key(self) -> Dict[str, str]:
        definition = definition_for(self.ENTITY_TYPE)
        return {"PK": definition.pk_builder(self), "SK": definition.sk_builder(self)}

    def storage_attributes(self) -> Dict[str, Any]:
        """Shadow attributes stored next to the public ones"""
        return {}

    def to_item(self) -> Dict[str, Any]:
        item = self.model_dump(by_alias=True, exclude_none=True)
        if self.NULLABLE_ATTRIBUTES:
            full = self.model_dump(by_alias=True)
            for name in self.NULLABLE_ATTRIBUTES:
                item[name] = full.get(name)
        item.update(self.storage_attributes())
        item.update(self.key())
        item["entityType"] = EntityType(self.ENTITY_TYPE).value
        return item

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "StoredEntity":
        return cls.model_validate({k: v for k, v in item.items() if k not in INTERNAL_ATTRIBUTES})

    def to_public(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


@dataclass(frozen=True)
class EntityDefinition:
    """Key-construction rule and schema for one entity kind"""
    entity_type: EntityType
    model: Type[StoredEntity]
    pk_builder: Callable[[Any], str]
    sk_builder: Callable[[Any], str]


_REGISTRY: Dict[EntityType, EntityDefinition] = {}


def register(definition: EntityDefinition) -> EntityDefinition:
    if definition.model.ENTITY_TYPE != definition.entity_type:
        raise ValueError(f"{definition.model.__name__} is tagged {definition.model.ENTITY_TYPE}, not {definition.entity_type}")
    _REGISTRY[definition.entity_type] = definition
    return definition


def definition_for(entity_type) -> EntityDefinition:
    try:
        return _REGISTRY[EntityType(entity_type)]
    except (KeyError, ValueError):
        raise MalformedKeyException(f"Unknown entity type: {entity_type!r}")


def registered_types() -> Dict[EntityType, EntityDefinition]:
    return dict(_REGISTRY)


def entity_from_item(item: Dict[str, Any]) -> StoredEntity:
    """Decode a raw row into its registered model using the discriminator"""
    if "entityType" not in item:
        raise MalformedKeyException(f"Row {item.get('PK')!r}/{item.get('SK')!r} has no entityType")
    return definition_for(item["entityType"]).model.from_item(item)
