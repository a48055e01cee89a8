"""Materialize a snapshot document as a brand-new, independent campaign."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session, sessionmaker

from siegekeeper.database import run_atomically
from siegekeeper.domain.enums import CombatantType
from siegekeeper.errors import SnapshotError, SnapshotIntegrityError
from siegekeeper.models import (
    Campaign,
    Combatant,
    CombatantCondition,
    Location,
    Monster,
    MonsterInstance,
    PlotPoint,
    SiegeNote,
    SiegeState,
    UserPreference,
)

from .document import (
    CampaignSnapshot,
    CombatantSnapshot,
    LocationSnapshot,
    MonsterSnapshot,
    SiegeStateSnapshot,
    check_campaign_name,
    parse_snapshot,
)
from .remap import EntityKind, RemapTable

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class RestoredCampaign:
    """Summary of a campaign created by a restore."""

    id: int
    name: str
    source_id: int
    created_at: datetime
    updated_at: datetime
    counts: dict[str, int] = field(default_factory=dict)


def _timestamp(name: str, value: datetime | None) -> dict[str, datetime]:
    # Missing timestamps fall back to the column default.
    return {name: value} if value is not None else {}


class SnapshotRestorer:
    """Insert one snapshot into an open transaction.

    Parents are always inserted, and their new identifiers recorded in the
    remap table, before any child that references them. That ordering lets
    the whole graph be written in a single forward pass.
    """

    def __init__(self, session: Session, remap: RemapTable | None = None) -> None:
        self.session = session
        self.remap = remap if remap is not None else RemapTable()
        self._combatant_types: dict[int, CombatantType] = {}

    def restore(self, snapshot: CampaignSnapshot, *, name: str | None = None) -> RestoredCampaign:
        campaign = self._insert_campaign(snapshot, name)

        for combatant in snapshot.combatants:
            self._insert_combatant(campaign.id, combatant)
        for monster in snapshot.monsters:
            self.remap.assign(
                EntityKind.MONSTER, monster.id, lambda m=monster: self._insert_monster(campaign.id, m)
            )
        for instance in snapshot.monster_instances:
            self._insert_instance(instance.monster_id, instance.combatant_id, instance.instance_name)
        if snapshot.siege_state is not None:
            self._insert_siege_state(campaign.id, snapshot.siege_state)
        for location in snapshot.locations:
            self._insert_location(campaign.id, location)
        for preference in snapshot.preferences:
            self.session.add(
                UserPreference(
                    campaign_id=campaign.id,
                    preference_key=preference.preference_key,
                    preference_value=preference.preference_value,
                )
            )
        self.session.flush()

        return RestoredCampaign(
            id=campaign.id,
            name=campaign.name,
            source_id=snapshot.campaign.id,
            created_at=campaign.created_at,
            updated_at=campaign.updated_at,
            counts=snapshot.counts(),
        )

    def _insert_campaign(self, snapshot: CampaignSnapshot, name: str | None) -> Campaign:
        campaign = Campaign(name=name or snapshot.campaign.name)

        def allocate() -> int:
            self.session.add(campaign)
            self.session.flush()
            return campaign.id

        self.remap.assign(EntityKind.CAMPAIGN, snapshot.campaign.id, allocate)
        return campaign

    def _insert_combatant(self, campaign_id: int, item: CombatantSnapshot) -> int:
        def allocate() -> int:
            row = Combatant(
                campaign_id=campaign_id,
                **item.model_dump(mode="json", exclude={"id", "conditions"}),
            )
            self.session.add(row)
            self.session.flush()
            return row.id

        new_id = self.remap.assign(EntityKind.COMBATANT, item.id, allocate)
        self._combatant_types[item.id] = item.type
        # Conditions are leaves: nothing references them, so no remap entry.
        for entry in item.conditions:
            self.session.add(
                CombatantCondition(
                    combatant_id=new_id,
                    condition=entry.condition.value,
                    **_timestamp("applied_at", entry.applied_at),
                )
            )
        return new_id

    def _insert_monster(self, campaign_id: int, item: MonsterSnapshot) -> int:
        row = Monster(campaign_id=campaign_id, **item.model_dump(mode="json", exclude={"id"}))
        self.session.add(row)
        self.session.flush()
        return row.id

    def _insert_instance(self, old_monster_id: int, old_combatant_id: int, instance_name: str) -> None:
        monster_id = self.remap.resolve(EntityKind.MONSTER, old_monster_id)
        combatant_id = self.remap.resolve(EntityKind.COMBATANT, old_combatant_id)
        if self._combatant_types.get(old_combatant_id) is not CombatantType.MONSTER:
            raise SnapshotIntegrityError(
                "Monster instance is bound to a combatant that is not a Monster",
                details={"combatant_id": old_combatant_id},
            )
        self.session.add(
            MonsterInstance(
                monster_id=monster_id, combatant_id=combatant_id, instance_name=instance_name
            )
        )

    def _insert_siege_state(self, campaign_id: int, item: SiegeStateSnapshot) -> int:
        row = SiegeState(
            campaign_id=campaign_id, **item.model_dump(mode="json", exclude={"notes"})
        )
        self.session.add(row)
        self.session.flush()
        for note in item.notes:
            self.session.add(
                SiegeNote(
                    siege_state_id=row.id,
                    note_text=note.note_text,
                    **_timestamp("created_at", note.created_at),
                )
            )
        return row.id

    def _insert_location(self, campaign_id: int, item: LocationSnapshot) -> int:
        def allocate() -> int:
            row = Location(
                campaign_id=campaign_id,
                **item.model_dump(mode="json", exclude={"id", "plot_points"}),
            )
            self.session.add(row)
            self.session.flush()
            return row.id

        new_id = self.remap.assign(EntityKind.LOCATION, item.id, allocate)
        for point in item.plot_points:
            values: dict[str, Any] = point.model_dump(mode="json", exclude={"created_at"})
            self.session.add(
                PlotPoint(location_id=new_id, **values, **_timestamp("created_at", point.created_at))
            )
        return new_id


def restore(
    snapshot: CampaignSnapshot | dict[str, Any] | str | bytes,
    *,
    name: str | None = None,
    session_factory: sessionmaker[Session] | None = None,
) -> RestoredCampaign:
    """Restore ``snapshot`` as a new campaign, all or nothing.

    The document is validated before any transaction opens. Every insert then
    runs inside one transaction; a constraint violation, an unresolved
    reference or any other failure rolls the whole restore back, so no part
    of the new campaign is ever visible.

    Args:
        snapshot: A snapshot model, or a raw document to validate first
        name: Optional name for the copy instead of the captured one
        session_factory: Factory to draw the transaction's session from

    Raises:
        SnapshotValidationError: The document or the name override is malformed
        SnapshotIntegrityError: A reference did not resolve or storage rejected a row
        TransientStorageError: The storage engine was unreachable
    """

    # Models can be mutated after construction, so validate the dump again.
    raw = snapshot.model_dump(by_alias=True) if isinstance(snapshot, CampaignSnapshot) else snapshot
    document = parse_snapshot(raw)
    if name is not None:
        name = check_campaign_name(name)

    try:
        restored = run_atomically(
            lambda session: SnapshotRestorer(session).restore(document, name=name),
            session_factory=session_factory,
        )
    except SnapshotError as exc:
        logger.warning(
            "restore of campaign %s rolled back: %s", document.campaign.id, exc.message
        )
        raise

    logger.info(
        "restored campaign %s as %s: %s", restored.source_id, restored.id, restored.counts
    )
    return restored
