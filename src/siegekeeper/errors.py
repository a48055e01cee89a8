"""Exception hierarchy for snapshot, restore and campaign storage operations.

Every error raised by the engine derives from :class:`SnapshotError` so the
HTTP layer can translate the whole family in one place. The subclasses tell
callers whether retrying makes sense:

* :class:`SnapshotValidationError` - bad input, never retry.
* :class:`SnapshotIntegrityError` - the data cannot be stored consistently.
* :class:`TransientStorageError` - the storage engine is unavailable, the
  caller may retry.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError as PydanticValidationError


class SnapshotError(Exception):
    """Base exception for the siegekeeper engine.

    Attributes:
        message: Human-readable error description.
        details: Additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


class EntityNotFoundError(SnapshotError, LookupError):
    """Raised when an operation targets a row that does not exist."""

    def __init__(self, kind: str, entity_id: int) -> None:
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind.capitalize()} not found", details={f"{kind}_id": entity_id})


class CampaignNotFoundError(EntityNotFoundError):
    """Raised when an operation targets a campaign that does not exist."""

    def __init__(self, campaign_id: int) -> None:
        self.campaign_id = campaign_id
        super().__init__("campaign", campaign_id)


class SnapshotValidationError(SnapshotError, ValueError):
    """Raised when input is structurally malformed or violates a field rule.

    Attributes:
        errors: Flattened list of ``{"loc", "msg"}`` entries, one per problem.
    """

    def __init__(
        self,
        message: str,
        *,
        errors: list[dict[str, Any]] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.errors = errors or []
        combined = dict(details or {})
        if self.errors:
            combined["error_count"] = len(self.errors)
        super().__init__(message, details=combined)

    @classmethod
    def from_pydantic(
        cls, exc: PydanticValidationError, message: str = "Invalid snapshot document"
    ) -> SnapshotValidationError:
        """Build from a ``pydantic.ValidationError``."""

        errors = [
            {"loc": ".".join(str(part) for part in item["loc"]), "msg": item["msg"]}
            for item in exc.errors()
        ]
        return cls(message, errors=errors)


class SnapshotIntegrityError(SnapshotError):
    """Raised when a write would break referential or constraint integrity."""


class MissingMappingError(SnapshotIntegrityError):
    """Raised when a snapshot references a parent that was never restored."""

    def __init__(self, kind: str, old_id: int) -> None:
        self.kind = kind
        self.old_id = old_id
        super().__init__(
            f"No restored {kind} for source identifier {old_id}",
            details={"kind": kind, "old_id": old_id},
        )


class TransientStorageError(SnapshotError):
    """Raised for connectivity, lock and timeout failures of the storage engine."""
