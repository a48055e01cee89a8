"""Service layer for siegekeeper.

Architecture:
    - CampaignService: campaign CRUD plus export, import and duplication
      through the snapshot engine
    - AutosaveCoordinator: coalesces modification marks into periodic touches

Usage:
    from siegekeeper.services import CampaignService
    campaigns = CampaignService(session_factory)
    copy = campaigns.duplicate_campaign(campaign_id)
"""

from siegekeeper.services.autosave import AutosaveCoordinator
from siegekeeper.services.campaigns import (
    CampaignService,
    CampaignSummary,
    SpawnedMonster,
    ability_modifier,
    average_hit_points,
)

__all__ = [
    "AutosaveCoordinator",
    "CampaignService",
    "CampaignSummary",
    "SpawnedMonster",
    "ability_modifier",
    "average_hit_points",
]
