from __future__ import annotations

from typing import Any, Self

from pydantic import BaseModel, ConfigDict


class PayloadModel(BaseModel):
    """Base class for backend payload helpers."""

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
        extra="ignore",
        frozen=True,
    )

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Self:
        """Hydrate a model from a raw backend response."""
        return cls.model_validate(payload)

    def to_payload(self) -> dict[str, Any]:
        """Serialize to a backend-friendly payload."""
        return self.model_dump(
            mode="json",
            by_alias=True,
            exclude_none=True,
        )


def coerce_identifier(value: Any) -> str | None:
    """Normalise identifiers that arrive as numbers or strings."""

    if value is None:
        return None
    if isinstance(value, bool):
        return None
    text = str(value).strip()
    return text or None
