from typing import Any, ClassVar, Dict, FrozenSet

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from worthwatch.core.exceptions import ValidationException


class RequestModel(BaseModel):
    """Request bodies accept camelCase keys (snake_case also allowed)"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    def to_fields(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class PatchModel(RequestModel):
    """Partial update: absent fields stay untouched.

    An explicit null is only accepted for attributes listed in
    ``NULLABLE_FIELDS``; it clears the stored value.
    """

    NULLABLE_FIELDS: ClassVar[FrozenSet[str]] = frozenset()

    def to_fields(self) -> Dict[str, Any]:
        changes = self.model_dump(exclude_unset=True)
        cleared = [name for name, value in changes.items() if value is None and name not in self.NULLABLE_FIELDS]
        if cleared:
            raise ValidationException(
                "Fields cannot be null",
                details=[{"field": to_camel(name), "message": "may not be null"} for name in cleared],
            )
        return changes
