"""Old-to-new identifier translation used while restoring a snapshot."""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum

from siegekeeper.errors import MissingMappingError, SnapshotIntegrityError


class EntityKind(StrEnum):
    """Entity kinds whose identifiers are referenced by other entities."""

    CAMPAIGN = "campaign"
    COMBATANT = "combatant"
    MONSTER = "monster"
    LOCATION = "location"


class RemapTable:
    """Per-kind bidirectional map from source identifiers to restored ones.

    A table lives for exactly one restore. Parents are assigned as they are
    inserted; children resolve their parent's new identifier afterwards, so a
    resolution failure means the snapshot references something it does not
    contain.
    """

    def __init__(self) -> None:
        self._forward: dict[EntityKind, dict[int, int]] = {kind: {} for kind in EntityKind}
        self._reverse: dict[EntityKind, dict[int, int]] = {kind: {} for kind in EntityKind}

    def assign(self, kind: EntityKind, old_id: int, allocate: Callable[[], int]) -> int:
        """Return the new identifier for ``(kind, old_id)``.

        ``allocate`` is called to create the entity and produce its new
        identifier the first time a pair is seen; later calls return the
        recorded identifier without calling it again.
        """

        mapping = self._forward[kind]
        if old_id in mapping:
            return mapping[old_id]
        new_id = allocate()
        reverse = self._reverse[kind]
        if new_id in reverse:
            raise SnapshotIntegrityError(
                f"Allocated {kind} identifier {new_id} twice",
                details={"kind": str(kind), "new_id": new_id},
            )
        mapping[old_id] = new_id
        reverse[new_id] = old_id
        return new_id

    def resolve(self, kind: EntityKind, old_id: int) -> int:
        """Return the new identifier previously assigned to ``(kind, old_id)``.

        Raises:
            MissingMappingError: The parent was never assigned.
        """

        try:
            return self._forward[kind][old_id]
        except KeyError:
            raise MissingMappingError(str(kind), old_id) from None

    def original(self, kind: EntityKind, new_id: int) -> int:
        """Reverse lookup: the source identifier behind a restored one."""

        try:
            return self._reverse[kind][new_id]
        except KeyError:
            raise MissingMappingError(str(kind), new_id) from None

    def __contains__(self, key: tuple[EntityKind, int]) -> bool:
        kind, old_id = key
        return old_id in self._forward[kind]

    def __len__(self) -> int:
        return sum(len(mapping) for mapping in self._forward.values())

    def count(self, kind: EntityKind) -> int:
        return len(self._forward[kind])
