"""Aggregate a campaign's full relational state into a snapshot document."""

from __future__ import annotations

import logging

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload, sessionmaker

from siegekeeper.database import get_session_factory, translate_storage_errors
from siegekeeper.errors import CampaignNotFoundError, SnapshotValidationError
from siegekeeper.models import (
    Campaign,
    Combatant,
    Location,
    Monster,
    MonsterInstance,
    SiegeState,
    UserPreference,
)

from .document import (
    CampaignInfo,
    CampaignSnapshot,
    CombatantSnapshot,
    LocationSnapshot,
    MonsterInstanceSnapshot,
    MonsterSnapshot,
    PreferenceSnapshot,
    SiegeStateSnapshot,
)

logger = logging.getLogger(__name__)


def capture(session: Session, campaign_id: int) -> CampaignSnapshot:
    """Read every entity owned by ``campaign_id`` into a snapshot.

    The capture issues one query per entity kind (child collections are
    eager-loaded with ``selectinload``) and orders every list
    deterministically, so capturing an unmodified campaign twice yields
    identical documents.

    Raises:
        CampaignNotFoundError: The campaign does not exist.
        SnapshotValidationError: Stored rows violate the document rules.
    """

    campaign = session.get(Campaign, campaign_id)
    if campaign is None:
        raise CampaignNotFoundError(campaign_id)

    combatants = session.scalars(
        select(Combatant)
        .where(Combatant.campaign_id == campaign_id)
        .options(selectinload(Combatant.conditions))
        .order_by(Combatant.initiative.desc(), Combatant.name, Combatant.id)
    ).all()

    monsters = session.scalars(
        select(Monster).where(Monster.campaign_id == campaign_id).order_by(Monster.name, Monster.id)
    ).all()

    # Both ends must belong to this campaign or the instance would dangle.
    instances = session.scalars(
        select(MonsterInstance)
        .join(Combatant, MonsterInstance.combatant_id == Combatant.id)
        .join(Monster, MonsterInstance.monster_id == Monster.id)
        .where(Combatant.campaign_id == campaign_id, Monster.campaign_id == campaign_id)
        .order_by(MonsterInstance.id)
    ).all()

    siege_state = session.scalars(
        select(SiegeState)
        .where(SiegeState.campaign_id == campaign_id)
        .options(selectinload(SiegeState.notes))
    ).first()

    locations = session.scalars(
        select(Location)
        .where(Location.campaign_id == campaign_id)
        .options(selectinload(Location.plot_points))
        .order_by(Location.name, Location.id)
    ).all()

    preferences = session.scalars(
        select(UserPreference)
        .where(UserPreference.campaign_id == campaign_id)
        .order_by(UserPreference.preference_key)
    ).all()

    try:
        snapshot = CampaignSnapshot(
            campaign=CampaignInfo.model_validate(campaign, from_attributes=True),
            combatants=[
                CombatantSnapshot.model_validate(row, from_attributes=True) for row in combatants
            ],
            monsters=[MonsterSnapshot.model_validate(row, from_attributes=True) for row in monsters],
            monster_instances=[
                MonsterInstanceSnapshot.model_validate(row, from_attributes=True)
                for row in instances
            ],
            siege_state=(
                SiegeStateSnapshot.model_validate(siege_state, from_attributes=True)
                if siege_state is not None
                else None
            ),
            locations=[
                LocationSnapshot.model_validate(row, from_attributes=True) for row in locations
            ],
            preferences=[
                PreferenceSnapshot.model_validate(row, from_attributes=True) for row in preferences
            ],
        )
    except ValidationError as exc:
        raise SnapshotValidationError.from_pydantic(
            exc, message=f"Campaign {campaign_id} holds data that cannot be snapshotted"
        ) from exc

    logger.info("captured campaign %s: %s", campaign_id, snapshot.counts())
    return snapshot


def capture_campaign(
    campaign_id: int, *, session_factory: sessionmaker[Session] | None = None
) -> CampaignSnapshot:
    """Open a session, capture ``campaign_id`` and close the session again."""

    factory = session_factory or get_session_factory()
    with translate_storage_errors(), factory() as session:
        return capture(session, campaign_id)
