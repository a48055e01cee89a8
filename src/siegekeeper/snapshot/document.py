"""Pydantic models for the portable campaign snapshot document.

The document is the serialization boundary between capture and restore. All
identifiers inside it are *source* identifiers: they only serve to resolve
references within the same document and never survive a restore.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    JsonValue,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)

from siegekeeper.domain.enums import CombatantType, Condition, LocationStatus, PlotPointStatus
from siegekeeper.errors import SnapshotValidationError

FORMAT_VERSION = 1

NAME_MAX_LENGTH = 255
# Largest value every supported INTEGER column can hold.
INT_MAX = 2**31 - 1

MetricValue = bool | int | float | str | None


def _empty_if_none(value: Any, factory: type) -> Any:
    """Older exports write null for empty collections."""

    return factory() if value is None else value


class SnapshotModel(BaseModel):
    """Base for document models; also validates straight from ORM rows."""

    model_config = ConfigDict(from_attributes=True)


class ConditionEntry(SnapshotModel):
    """A condition label with the time it was applied."""

    condition: Condition
    applied_at: datetime | None = None


class CombatantFields(SnapshotModel):
    """Validated attributes of a combatant, shared by creation and snapshots."""

    name: str = Field(min_length=1, max_length=255)
    type: CombatantType
    initiative: int = Field(default=0, ge=-10, le=50)
    ac: int = Field(ge=0, le=50)
    current_hp: int = Field(ge=0, le=9999)
    max_hp: int = Field(ge=1, le=9999)
    save_strength: int = Field(default=0, ge=-10, le=20)
    save_dexterity: int = Field(default=0, ge=-10, le=20)
    save_constitution: int = Field(default=0, ge=-10, le=20)
    save_intelligence: int = Field(default=0, ge=-10, le=20)
    save_wisdom: int = Field(default=0, ge=-10, le=20)
    save_charisma: int = Field(default=0, ge=-10, le=20)
    character_class: str | None = Field(default=None, max_length=100)
    level: int | None = Field(default=None, ge=1, le=20)
    notes: str | None = Field(default=None, max_length=5000)

    @model_validator(mode="after")
    def _check_hit_points(self) -> CombatantFields:
        if self.current_hp > self.max_hp:
            raise ValueError(
                f"current_hp ({self.current_hp}) cannot exceed max_hp ({self.max_hp})"
            )
        return self


class CombatantSnapshot(CombatantFields):
    """A combatant with its ordered conditions."""

    id: int
    conditions: list[ConditionEntry] = Field(default_factory=list)

    @field_validator("conditions", mode="before")
    @classmethod
    def _conditions_default(cls, value: Any) -> Any:
        return _empty_if_none(value, list)


class MonsterAttack(SnapshotModel):
    """One entry of a stat block's actions."""

    name: str = Field(min_length=1)
    bonus: int | None = None
    damage: str | None = None
    type: str | None = None
    description: str | None = None


class MonsterAbility(SnapshotModel):
    """A special trait of a stat block."""

    name: str = Field(min_length=1)
    description: str | None = None


class MonsterFields(SnapshotModel):
    """A monster template (stat block)."""

    name: str = Field(min_length=1, max_length=255)
    ac: int = Field(ge=0, le=50)
    hp_formula: str | None = Field(default=None, max_length=50)
    speed: str | None = Field(default=None, max_length=100)
    stat_str: int | None = Field(default=None, ge=1, le=30)
    stat_dex: int | None = Field(default=None, ge=1, le=30)
    stat_con: int | None = Field(default=None, ge=1, le=30)
    stat_int: int | None = Field(default=None, ge=1, le=30)
    stat_wis: int | None = Field(default=None, ge=1, le=30)
    stat_cha: int | None = Field(default=None, ge=1, le=30)
    saves: dict[str, int] = Field(default_factory=dict)
    skills: dict[str, int] = Field(default_factory=dict)
    resistances: list[str] = Field(default_factory=list)
    immunities: list[str] = Field(default_factory=list)
    senses: str | None = Field(default=None, max_length=255)
    languages: str | None = Field(default=None, max_length=255)
    cr: str | None = Field(default=None, max_length=20)
    attacks: list[MonsterAttack] = Field(default_factory=list)
    abilities: list[MonsterAbility] = Field(default_factory=list)
    lore: str | None = None

    @field_validator("saves", "skills", mode="before")
    @classmethod
    def _maps_default(cls, value: Any) -> Any:
        return _empty_if_none(value, dict)

    @field_validator("resistances", "immunities", "attacks", "abilities", mode="before")
    @classmethod
    def _lists_default(cls, value: Any) -> Any:
        return _empty_if_none(value, list)


class MonsterSnapshot(MonsterFields):
    id: int


class MonsterInstanceSnapshot(SnapshotModel):
    """Pairs a combatant with the template it was spawned from."""

    monster_id: int
    combatant_id: int
    instance_name: str = Field(min_length=1, max_length=255)


class SiegeNoteSnapshot(SnapshotModel):
    note_text: str = Field(min_length=1)
    created_at: datetime | None = None


class SiegeStateSnapshot(SnapshotModel):
    """Siege metrics with their ordered notes."""

    wall_integrity: int = Field(default=100, ge=0, le=100)
    defender_morale: int = Field(default=100, ge=0, le=100)
    supplies: int = Field(default=100, ge=0, le=100)
    day_of_siege: int = Field(default=1, ge=1, le=INT_MAX)
    custom_metrics: dict[str, MetricValue] = Field(default_factory=dict)
    notes: list[SiegeNoteSnapshot] = Field(default_factory=list)

    @field_validator("custom_metrics", mode="before")
    @classmethod
    def _metrics_default(cls, value: Any) -> Any:
        return _empty_if_none(value, dict)

    @field_validator("notes", mode="before")
    @classmethod
    def _notes_default(cls, value: Any) -> Any:
        return _empty_if_none(value, list)


class PlotPointSnapshot(SnapshotModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    status: PlotPointStatus = PlotPointStatus.ACTIVE
    coord_x: int | None = Field(default=None, ge=-INT_MAX, le=INT_MAX)
    coord_y: int | None = Field(default=None, ge=-INT_MAX, le=INT_MAX)
    created_at: datetime | None = None


class LocationFields(SnapshotModel):
    """Attributes of a map location."""

    name: str = Field(min_length=1, max_length=255)
    status: LocationStatus = LocationStatus.CONTROLLED
    description: str | None = None
    coord_x: int | None = Field(default=None, ge=-INT_MAX, le=INT_MAX)
    coord_y: int | None = Field(default=None, ge=-INT_MAX, le=INT_MAX)
    coord_width: int | None = Field(default=None, ge=0, le=INT_MAX)
    coord_height: int | None = Field(default=None, ge=0, le=INT_MAX)


class LocationSnapshot(LocationFields):
    """A map location with its nested plot points."""

    id: int
    plot_points: list[PlotPointSnapshot] = Field(default_factory=list)

    @field_validator("plot_points", mode="before")
    @classmethod
    def _plot_points_default(cls, value: Any) -> Any:
        return _empty_if_none(value, list)


class PreferenceSnapshot(SnapshotModel):
    preference_key: str = Field(min_length=1, max_length=100)
    preference_value: JsonValue = None


class CampaignInfo(SnapshotModel):
    id: int
    name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)


class CampaignSnapshot(SnapshotModel):
    """Complete, self-contained state of one campaign."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    format_version: int = FORMAT_VERSION
    campaign: CampaignInfo
    combatants: list[CombatantSnapshot] = Field(default_factory=list)
    monsters: list[MonsterSnapshot] = Field(default_factory=list)
    monster_instances: list[MonsterInstanceSnapshot] = Field(
        default_factory=list, alias="monsterInstances"
    )
    siege_state: SiegeStateSnapshot | None = Field(default=None, alias="siegeState")
    locations: list[LocationSnapshot] = Field(default_factory=list)
    preferences: list[PreferenceSnapshot] = Field(default_factory=list)

    @field_validator(
        "combatants", "monsters", "monster_instances", "locations", "preferences", mode="before"
    )
    @classmethod
    def _collections_default(cls, value: Any) -> Any:
        return _empty_if_none(value, list)

    @field_validator("format_version")
    @classmethod
    def _supported_version(cls, value: int) -> int:
        if value > FORMAT_VERSION:
            raise ValueError(f"unsupported snapshot format version {value}")
        return value

    @model_validator(mode="after")
    def _check_unique_identifiers(self) -> CampaignSnapshot:
        _require_unique("combatants", (c.id for c in self.combatants))
        _require_unique("monsters", (m.id for m in self.monsters))
        _require_unique("locations", (loc.id for loc in self.locations))
        _require_unique("preferences", (p.preference_key for p in self.preferences))
        _require_unique("monsterInstances", (i.combatant_id for i in self.monster_instances))
        return self

    def counts(self) -> dict[str, int]:
        """Entity counts per kind, used for logging and API summaries."""

        return {
            "combatants": len(self.combatants),
            "conditions": sum(len(c.conditions) for c in self.combatants),
            "monsters": len(self.monsters),
            "monster_instances": len(self.monster_instances),
            "siege_notes": len(self.siege_state.notes) if self.siege_state else 0,
            "locations": len(self.locations),
            "plot_points": sum(len(loc.plot_points) for loc in self.locations),
            "preferences": len(self.preferences),
        }


def _require_unique(label: str, values: Iterable[object]) -> None:
    seen: set[object] = set()
    duplicates: list[object] = []
    for value in values:
        if value in seen:
            duplicates.append(value)
        seen.add(value)
    if duplicates:
        raise ValueError(f"duplicate {label} identifiers: {duplicates}")


_CAMPAIGN_NAME = TypeAdapter(Annotated[str, Field(min_length=1, max_length=NAME_MAX_LENGTH)])


def check_campaign_name(name: str) -> str:
    """Apply the document's campaign name rules to ``name``.

    Raises:
        SnapshotValidationError: The name is empty or too long to capture again.
    """

    try:
        return _CAMPAIGN_NAME.validate_python(name)
    except ValidationError as exc:
        raise SnapshotValidationError.from_pydantic(exc, message="Invalid campaign name") from exc


def parse_snapshot(payload: dict[str, Any] | str | bytes) -> CampaignSnapshot:
    """Validate a raw document (mapping or JSON text) into a snapshot.

    Raises:
        SnapshotValidationError: The document is malformed.
    """

    try:
        if isinstance(payload, str | bytes):
            return CampaignSnapshot.model_validate_json(payload)
        return CampaignSnapshot.model_validate(payload)
    except ValidationError as exc:
        raise SnapshotValidationError.from_pydantic(exc) from exc


def dump_snapshot(snapshot: CampaignSnapshot) -> dict[str, Any]:
    """Return the JSON-compatible document using its public field names."""

    return snapshot.model_dump(mode="json", by_alias=True)


def save_snapshot(snapshot: CampaignSnapshot, path: Path | str) -> Path:
    """Write a snapshot document to ``path`` as JSON."""

    payload = json.dumps(dump_snapshot(snapshot), indent=2, sort_keys=True)
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(payload, encoding="utf-8")
    return target


def load_snapshot(path: Path | str) -> CampaignSnapshot:
    """Read and validate a snapshot document from ``path``."""

    return parse_snapshot(Path(path).read_bytes())


def strip_identifiers(snapshot: CampaignSnapshot) -> dict[str, Any]:
    """Identifier-free structural view of a snapshot.

    Source identifiers are removed; monster instance references are rewritten
    as positions in the ``monsters`` and ``combatants`` lists so two snapshots
    of equivalent campaigns compare equal.
    """

    data = dump_snapshot(snapshot)
    data["campaign"].pop("id", None)
    combatant_pos = {item.pop("id"): index for index, item in enumerate(data["combatants"])}
    monster_pos = {item.pop("id"): index for index, item in enumerate(data["monsters"])}
    for location in data["locations"]:
        location.pop("id", None)
    for instance in data["monsterInstances"]:
        instance["monster_id"] = monster_pos.get(instance["monster_id"])
        instance["combatant_id"] = combatant_pos.get(instance["combatant_id"])
    return data


def dangling_references(snapshot: CampaignSnapshot) -> list[str]:
    """Describe every reference that does not resolve inside the snapshot."""

    combatants = {c.id: c for c in snapshot.combatants}
    monsters = {m.id for m in snapshot.monsters}
    problems: list[str] = []
    for index, instance in enumerate(snapshot.monster_instances):
        if instance.monster_id not in monsters:
            problems.append(f"monsterInstances[{index}].monster_id={instance.monster_id}")
        combatant = combatants.get(instance.combatant_id)
        if combatant is None:
            problems.append(f"monsterInstances[{index}].combatant_id={instance.combatant_id}")
        elif combatant.type is not CombatantType.MONSTER:
            problems.append(
                f"monsterInstances[{index}].combatant_id={instance.combatant_id} is not a Monster"
            )
    return problems
