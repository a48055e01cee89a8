"""SQLAlchemy models for siegekeeper campaigns.

This module exports every table model together with the declarative base.
"""

from .base import Base, TimestampCreatedMixin, TimestampMixin, UTCDateTime, utc_now

# Aggregate root
from .campaign import Campaign

# Combat
from .combatant import Combatant, CombatantCondition

# City map
from .map import Location, PlotPoint

# Monster templates and instances
from .monster import Monster, MonsterInstance

# Preferences
from .preference import UserPreference

# Siege
from .siege import SiegeNote, SiegeState

__all__ = [
    "Base",
    "Campaign",
    "Combatant",
    "CombatantCondition",
    "Location",
    "Monster",
    "MonsterInstance",
    "PlotPoint",
    "SiegeNote",
    "SiegeState",
    "TimestampCreatedMixin",
    "TimestampMixin",
    "UTCDateTime",
    "UserPreference",
    "utc_now",
]
