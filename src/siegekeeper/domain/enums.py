"""Enumerations shared by the ORM schema and the snapshot document."""

from __future__ import annotations

from enum import StrEnum


class CombatantType(StrEnum):
    """Kinds of combat participants."""

    PC = "PC"
    NPC = "NPC"
    MONSTER = "Monster"


class Condition(StrEnum):
    """Status effects that can be applied to a combatant."""

    BLINDED = "blinded"
    CHARMED = "charmed"
    DEAFENED = "deafened"
    EXHAUSTION = "exhaustion"
    FRIGHTENED = "frightened"
    GRAPPLED = "grappled"
    INCAPACITATED = "incapacitated"
    INVISIBLE = "invisible"
    PARALYZED = "paralyzed"
    PETRIFIED = "petrified"
    POISONED = "poisoned"
    PRONE = "prone"
    RESTRAINED = "restrained"
    STUNNED = "stunned"
    UNCONSCIOUS = "unconscious"


class LocationStatus(StrEnum):
    """Control state of a city map location."""

    CONTROLLED = "controlled"
    CONTESTED = "contested"
    ENEMY = "enemy"
    DESTROYED = "destroyed"


class PlotPointStatus(StrEnum):
    """Progress of a plot point."""

    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


class Ability(StrEnum):
    """The six ability scores, keyed the way saving throws are stored."""

    STRENGTH = "strength"
    DEXTERITY = "dexterity"
    CONSTITUTION = "constitution"
    INTELLIGENCE = "intelligence"
    WISDOM = "wisdom"
    CHARISMA = "charisma"

    @property
    def short(self) -> str:
        """Three-letter abbreviation (``str``, ``dex`` ...)."""

        return self.value[:3]


def sql_in(enum_cls: type[StrEnum]) -> str:
    """Render an enum's values as a SQL ``IN`` list for check constraints."""

    return "(" + ", ".join(f"'{member.value}'" for member in enum_cls) + ")"
