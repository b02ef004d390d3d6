from __future__ import annotations

import uuid
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Self

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from timecore.exceptions import ValidationError

_CENT = Decimal("0.01")


def _uuid_factory() -> uuid.UUID:
    """Generate a new UUID v4."""
    return uuid.uuid4()


def round_hours(value: Decimal | int | float) -> Decimal:
    """Round to two decimal places, half away from zero."""
    return Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP)


class DomainModel(BaseModel):
    """Immutable record base.

    Field constraints run first (shape); an after-validator on each subclass
    then raises ``BusinessRuleError`` for cross-field rules. Every change goes
    through ``evolve``, which rebuilds and re-validates the whole record.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Build a record from plain data, converting shape errors."""
        try:
            return cls.model_validate(data)
        except PydanticValidationError as exc:
            raise ValidationError.from_pydantic(cls.__name__, exc) from exc

    @classmethod
    def create(cls, **fields: Any) -> Self:
        return cls.from_dict(fields)

    def evolve(self, **changes: Any) -> Self:
        """Return a new, fully re-validated record with ``changes`` applied."""
        data = {name: getattr(self, name) for name in type(self).model_fields}
        data.update(changes)
        return type(self).from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-compatible data."""
        return self.model_dump(mode="json")
