"""Domain vocabulary for siegekeeper campaigns."""

from .enums import Ability, CombatantType, Condition, LocationStatus, PlotPointStatus

__all__ = [
    "Ability",
    "CombatantType",
    "Condition",
    "LocationStatus",
    "PlotPointStatus",
]
