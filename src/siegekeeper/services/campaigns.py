"""Campaign CRUD used to populate and maintain stored campaigns.

Every public method runs inside one :func:`~siegekeeper.database.atomic`
transaction and returns plain pydantic models rather than ORM rows, so
results stay usable after the session is closed.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel, Field, ValidationError
from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session, sessionmaker

from siegekeeper.database import atomic, get_session_factory
from siegekeeper.domain.enums import Ability, CombatantType, Condition
from siegekeeper.errors import (
    CampaignNotFoundError,
    EntityNotFoundError,
    SnapshotValidationError,
)
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
    utc_now,
)
from siegekeeper.snapshot import (
    CampaignSnapshot,
    RestoredCampaign,
    capture,
    restore,
)
from siegekeeper.snapshot.document import (
    NAME_MAX_LENGTH,
    CombatantFields,
    CombatantSnapshot,
    ConditionEntry,
    LocationFields,
    LocationSnapshot,
    MonsterFields,
    MonsterInstanceSnapshot,
    MonsterSnapshot,
    PlotPointSnapshot,
    PreferenceSnapshot,
    SiegeNoteSnapshot,
    SiegeStateSnapshot,
    SnapshotModel,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

DEFAULT_MONSTER_HP = 10
COPY_SUFFIX = " (copy)"
_HP_FORMULA = re.compile(r"(\d+)d(\d+)(?:\s*\+\s*(\d+))?")


class CampaignCreate(SnapshotModel):
    name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)


class CampaignSummary(SnapshotModel):
    """Campaign row as returned by listings and lookups."""

    id: int
    name: str
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True, frozen=True)
class SpawnedMonster:
    """Result of spawning a combat copy of a monster template."""

    instance: MonsterInstanceSnapshot
    combatant: CombatantSnapshot
    template: MonsterSnapshot


def average_hit_points(formula: str | None, default: int = DEFAULT_MONSTER_HP) -> int:
    """Average of a dice formula such as ``4d8+4``; ``default`` when unparsable."""

    if not formula:
        return default
    match = _HP_FORMULA.search(formula)
    if match is None:
        return default
    count, size = int(match.group(1)), int(match.group(2))
    bonus = int(match.group(3)) if match.group(3) else 0
    return count * (size + 1) // 2 + bonus


def ability_modifier(score: int | None) -> int:
    """Standard ability modifier; a missing score counts as 10."""

    return ((score if score is not None else 10) - 10) // 2


def _validate(model: type[M], data: BaseModel | Mapping[str, Any]) -> M:
    payload = data.model_dump() if isinstance(data, BaseModel) else data
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise SnapshotValidationError.from_pydantic(
            exc, message=f"Invalid {model.__name__}"
        ) from exc


class CampaignService:
    """Create, read, update and delete campaigns and the rows they own."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        self._session_factory = session_factory

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._session_factory is None:
            self._session_factory = get_session_factory()
        return self._session_factory

    # ------------------------------------------------------------------ campaigns

    def create_campaign(self, name: str) -> CampaignSummary:
        """Create an empty campaign together with its default siege state."""

        data = _validate(CampaignCreate, {"name": name})
        with atomic(self.session_factory) as session:
            campaign = Campaign(name=data.name)
            session.add(campaign)
            session.flush()
            session.add(SiegeState(campaign_id=campaign.id))
            session.flush()
            summary = CampaignSummary.model_validate(campaign)
        logger.info("created campaign %s (%s)", summary.id, summary.name)
        return summary

    def get_campaign(self, campaign_id: int) -> CampaignSummary:
        with atomic(self.session_factory) as session:
            return CampaignSummary.model_validate(self._campaign(session, campaign_id))

    def list_campaigns(self) -> list[CampaignSummary]:
        """Every campaign, most recently modified first."""

        with atomic(self.session_factory) as session:
            rows = session.scalars(
                select(Campaign).order_by(
                    Campaign.updated_at.desc(), Campaign.created_at.desc(), Campaign.id.desc()
                )
            ).all()
            return [CampaignSummary.model_validate(row) for row in rows]

    def rename_campaign(self, campaign_id: int, name: str) -> CampaignSummary:
        data = _validate(CampaignCreate, {"name": name})
        with atomic(self.session_factory) as session:
            campaign = self._campaign(session, campaign_id)
            campaign.name = data.name
            session.flush()
            return CampaignSummary.model_validate(campaign)

    def delete_campaign(self, campaign_id: int) -> None:
        """Delete a campaign; the database cascades to every owned row."""

        with atomic(self.session_factory) as session:
            result = session.execute(delete(Campaign).where(Campaign.id == campaign_id))
            if result.rowcount == 0:
                raise CampaignNotFoundError(campaign_id)
        logger.info("deleted campaign %s", campaign_id)

    def touch(self, campaign_id: int) -> CampaignSummary:
        """Bump ``updated_at`` without changing any campaign data."""

        with atomic(self.session_factory) as session:
            result = session.execute(
                update(Campaign).where(Campaign.id == campaign_id).values(updated_at=utc_now())
            )
            if result.rowcount == 0:
                raise CampaignNotFoundError(campaign_id)
            return CampaignSummary.model_validate(self._campaign(session, campaign_id))

    # ----------------------------------------------------------------- combatants

    def add_combatant(
        self, campaign_id: int, fields: CombatantFields | Mapping[str, Any]
    ) -> CombatantSnapshot:
        data = _validate(CombatantFields, fields)
        with atomic(self.session_factory) as session:
            self._campaign(session, campaign_id)
            row = Combatant(campaign_id=campaign_id, **data.model_dump(mode="json"))
            session.add(row)
            session.flush()
            return CombatantSnapshot.model_validate(row)

    def update_combatant_hp(self, combatant_id: int, current_hp: int) -> CombatantSnapshot:
        """Set current hit points, clamped to ``0..max_hp``."""

        with atomic(self.session_factory) as session:
            row = self._get(session, Combatant, combatant_id)
            row.current_hp = max(0, min(int(current_hp), row.max_hp))
            session.flush()
            return CombatantSnapshot.model_validate(row)

    def add_condition(self, combatant_id: int, condition: Condition | str) -> ConditionEntry:
        try:
            label = Condition(condition)
        except ValueError as exc:
            raise SnapshotValidationError(
                f"Unknown condition {condition!r}",
                details={"allowed": [member.value for member in Condition]},
            ) from exc
        with atomic(self.session_factory) as session:
            self._get(session, Combatant, combatant_id)
            row = CombatantCondition(combatant_id=combatant_id, condition=label.value)
            session.add(row)
            session.flush()
            return ConditionEntry.model_validate(row)

    def remove_condition(self, combatant_id: int, condition: Condition | str) -> int:
        """Remove every application of ``condition``; returns how many were removed."""

        with atomic(self.session_factory) as session:
            self._get(session, Combatant, combatant_id)
            result = session.execute(
                delete(CombatantCondition).where(
                    CombatantCondition.combatant_id == combatant_id,
                    CombatantCondition.condition == str(condition),
                )
            )
            return result.rowcount

    # ------------------------------------------------------------------- monsters

    def create_monster(
        self, campaign_id: int, fields: MonsterFields | Mapping[str, Any]
    ) -> MonsterSnapshot:
        data = _validate(MonsterFields, fields)
        with atomic(self.session_factory) as session:
            self._campaign(session, campaign_id)
            row = Monster(campaign_id=campaign_id, **data.model_dump(mode="json"))
            session.add(row)
            session.flush()
            return MonsterSnapshot.model_validate(row)

    def create_monster_instance(
        self, monster_id: int, instance_name: str | None = None, initiative: int = 0
    ) -> SpawnedMonster:
        """Spawn a combatant from a template and link the two.

        Hit points are the average of the template's dice formula. Each save
        uses the template's listed bonus, falling back to the ability modifier.
        """

        with atomic(self.session_factory) as session:
            monster = self._get(session, Monster, monster_id)
            hp = max(1, average_hit_points(monster.hp_formula))
            saves = monster.saves or {}
            fields: dict[str, Any] = {
                "name": instance_name or monster.name,
                "type": CombatantType.MONSTER,
                "initiative": initiative,
                "ac": monster.ac,
                "current_hp": hp,
                "max_hp": hp,
                "notes": f"Monster instance of {monster.name}",
            }
            for ability in Ability:
                bonus = saves.get(ability.value)
                if bonus is None:
                    bonus = ability_modifier(getattr(monster, f"stat_{ability.short}"))
                fields[f"save_{ability.value}"] = bonus
            data = _validate(CombatantFields, fields)

            combatant = Combatant(campaign_id=monster.campaign_id, **data.model_dump(mode="json"))
            session.add(combatant)
            session.flush()
            instance = MonsterInstance(
                monster_id=monster.id,
                combatant_id=combatant.id,
                instance_name=instance_name or monster.name,
            )
            session.add(instance)
            session.flush()
            return SpawnedMonster(
                instance=MonsterInstanceSnapshot.model_validate(instance),
                combatant=CombatantSnapshot.model_validate(combatant),
                template=MonsterSnapshot.model_validate(monster),
            )

    # ---------------------------------------------------------------------- siege

    def get_siege_state(self, campaign_id: int) -> SiegeStateSnapshot:
        with atomic(self.session_factory) as session:
            return SiegeStateSnapshot.model_validate(self._siege_state(session, campaign_id))

    def update_siege(self, campaign_id: int, **metrics: Any) -> SiegeStateSnapshot:
        """Update siege metrics; unknown names are rejected."""

        allowed = set(SiegeStateSnapshot.model_fields) - {"notes"}
        unknown = sorted(set(metrics) - allowed)
        if unknown:
            raise SnapshotValidationError(
                "Unknown siege metrics", details={"unknown": unknown}
            )
        if not metrics:
            raise SnapshotValidationError("No siege metrics to update")

        with atomic(self.session_factory) as session:
            row = self._siege_state(session, campaign_id)
            current = SiegeStateSnapshot.model_validate(row).model_dump(exclude={"notes"})
            data = _validate(SiegeStateSnapshot, {**current, **metrics})
            for key in metrics:
                setattr(row, key, getattr(data, key))
            session.flush()
            return SiegeStateSnapshot.model_validate(row)

    def add_siege_note(self, campaign_id: int, note_text: str) -> SiegeNoteSnapshot:
        data = _validate(SiegeNoteSnapshot, {"note_text": note_text})
        with atomic(self.session_factory) as session:
            state = self._siege_state(session, campaign_id)
            row = SiegeNote(siege_state_id=state.id, note_text=data.note_text)
            session.add(row)
            session.flush()
            return SiegeNoteSnapshot.model_validate(row)

    # ------------------------------------------------------------------------ map

    def create_location(
        self, campaign_id: int, fields: LocationFields | Mapping[str, Any]
    ) -> LocationSnapshot:
        data = _validate(LocationFields, fields)
        with atomic(self.session_factory) as session:
            self._campaign(session, campaign_id)
            row = Location(campaign_id=campaign_id, **data.model_dump(mode="json"))
            session.add(row)
            session.flush()
            return LocationSnapshot.model_validate(row)

    def add_plot_point(
        self, location_id: int, fields: PlotPointSnapshot | Mapping[str, Any]
    ) -> PlotPointSnapshot:
        data = _validate(PlotPointSnapshot, fields)
        with atomic(self.session_factory) as session:
            self._get(session, Location, location_id)
            row = PlotPoint(
                location_id=location_id,
                **data.model_dump(mode="json", exclude={"created_at"}),
            )
            session.add(row)
            session.flush()
            return PlotPointSnapshot.model_validate(row)

    # ---------------------------------------------------------------- preferences

    def set_preference(self, campaign_id: int, key: str, value: Any) -> PreferenceSnapshot:
        """Insert or replace the preference stored under ``key``."""

        data = _validate(PreferenceSnapshot, {"preference_key": key, "preference_value": value})
        with atomic(self.session_factory) as session:
            self._campaign(session, campaign_id)
            row = session.scalars(
                select(UserPreference).where(
                    UserPreference.campaign_id == campaign_id,
                    UserPreference.preference_key == data.preference_key,
                )
            ).first()
            if row is None:
                row = UserPreference(campaign_id=campaign_id, preference_key=data.preference_key)
                session.add(row)
            row.preference_value = data.preference_value
            session.flush()
            return PreferenceSnapshot.model_validate(row)

    def get_preferences(self, campaign_id: int) -> dict[str, Any]:
        with atomic(self.session_factory) as session:
            self._campaign(session, campaign_id)
            rows = session.scalars(
                select(UserPreference)
                .where(UserPreference.campaign_id == campaign_id)
                .order_by(UserPreference.preference_key)
            ).all()
            return {row.preference_key: row.preference_value for row in rows}

    # ------------------------------------------------------------------ snapshots

    def export_campaign(self, campaign_id: int) -> CampaignSnapshot:
        with atomic(self.session_factory) as session:
            return capture(session, campaign_id)

    def import_campaign(
        self, document: CampaignSnapshot | Mapping[str, Any] | str | bytes, *, name: str | None = None
    ) -> RestoredCampaign:
        return restore(document, name=name, session_factory=self.session_factory)

    def duplicate_campaign(self, campaign_id: int, name: str | None = None) -> RestoredCampaign:
        """Copy a campaign by capturing it and restoring the capture."""

        snapshot = self.export_campaign(campaign_id)
        if name is None:
            base = snapshot.campaign.name[: NAME_MAX_LENGTH - len(COPY_SUFFIX)].rstrip()
            name = f"{base}{COPY_SUFFIX}"
        return restore(snapshot, name=name, session_factory=self.session_factory)

    # -------------------------------------------------------------------- helpers

    @staticmethod
    def _campaign(session: Session, campaign_id: int) -> Campaign:
        campaign = session.get(Campaign, campaign_id)
        if campaign is None:
            raise CampaignNotFoundError(campaign_id)
        return campaign

    @staticmethod
    def _get(session: Session, model: type[Any], entity_id: int) -> Any:
        row = session.get(model, entity_id)
        if row is None:
            raise EntityNotFoundError(model.__name__.lower(), entity_id)
        return row

    def _siege_state(self, session: Session, campaign_id: int) -> SiegeState:
        """Siege state of a campaign, created with defaults on first use."""

        self._campaign(session, campaign_id)
        state = session.scalars(
            select(SiegeState).where(SiegeState.campaign_id == campaign_id)
        ).first()
        if state is None:
            state = SiegeState(campaign_id=campaign_id)
            session.add(state)
            session.flush()
        return state
