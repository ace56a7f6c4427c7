from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Type, TypeVar

from pydantic import ValidationError

from groupsync.data.models import PayloadModel
from groupsync.utils import get_logger


logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=PayloadModel)


@dataclass(slots=True)
class ValidationIssue:
    """Represents a schema validation failure for a backend payload."""

    resource: str
    identifier: str | None
    message: str
    detail: str | None = None
    fields: tuple[str, ...] = field(default_factory=tuple)


class PayloadValidator:
    """Validate backend payloads, skipping the ones that do not fit."""

    def __init__(
        self,
        resource: str,
        *,
        issue_callback: Callable[[ValidationIssue], None] | None = None,
    ) -> None:
        self._resource = resource
        self._issue_callback = issue_callback
        self._issues: list[ValidationIssue] = []

    # ------------------------------------------------------------------ Public

    def parse(
        self,
        model: Type[ModelT],
        payload: Any,
    ) -> ModelT | None:
        """Validate and parse a single payload."""

        if not isinstance(payload, dict):
            issue = ValidationIssue(
                resource=self._resource,
                identifier=None,
                message="Payload is not an object",
                detail=repr(payload)[:200],
            )
            self._issues.append(issue)
            logger.warning(
                "Backend payload is not an object",
                resource=self._resource,
                payload_type=type(payload).__name__,
            )
            return None
        try:
            return model.from_payload(payload)
        except ValidationError as exc:
            issue = self._build_issue(payload, exc)
            self._record_issue(issue, exc)
            return None

    def parse_many(
        self,
        model: Type[ModelT],
        payloads: Iterable[Any],
    ) -> list[ModelT]:
        """Validate and parse an iterable, skipping invalid payloads.

        One summary line is logged per batch that had to skip anything.
        """

        items: list[ModelT] = []
        seen = 0
        for payload in payloads:
            seen += 1
            item = self.parse(model, payload)
            if item is not None:
                items.append(item)
        skipped = seen - len(items)
        if skipped:
            logger.info(
                "Skipped invalid payloads",
                resource=self._resource,
                skipped=skipped,
                total=seen,
            )
        return items

    def issues(self) -> list[ValidationIssue]:
        return list(self._issues)

    def identifiers(self) -> list[str]:
        """Identifiers of skipped payloads, in the order they were seen."""
        return [issue.identifier for issue in self._issues if issue.identifier]

    def reset(self) -> None:
        self._issues.clear()

    # ----------------------------------------------------------------- Helpers

    def _build_issue(
        self,
        payload: dict[str, Any],
        exc: ValidationError,
    ) -> ValidationIssue:
        raw_id = payload.get("id", payload.get("group_id"))
        identifier = str(raw_id) if raw_id is not None else None
        fields = tuple(
            ".".join(str(segment) for segment in error.get("loc", ()))
            for error in exc.errors()
        )
        return ValidationIssue(
            resource=self._resource,
            identifier=identifier,
            message="Backend payload failed schema validation",
            detail=exc.json(),
            fields=fields,
        )

    def _record_issue(self, issue: ValidationIssue, exc: ValidationError) -> None:
        self._issues.append(issue)
        field_list = ", ".join(issue.fields) if issue.fields else "unknown"
        logger.warning(
            "Backend payload validation failed",
            resource=self._resource,
            identifier=issue.identifier,
            fields=field_list,
        )
        if self._issue_callback is not None:
            try:
                self._issue_callback(issue)
            except Exception:  # pragma: no cover - callbacks should not break validation
                logger.exception("Validation issue callback raised an exception")


__all__: List[str] = ["PayloadValidator", "ValidationIssue"]
