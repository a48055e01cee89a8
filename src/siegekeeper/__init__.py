"""Siegekeeper: campaign state storage with snapshot capture and restore."""

__version__ = "0.3.0"
