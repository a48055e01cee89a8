"""Combatant and condition models.

Combatants cover player characters, non-player characters and the combat
copies of monster templates. Conditions are status effects attached to a
single combatant and disappear with it.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from siegekeeper.domain.enums import CombatantType, Condition, sql_in

from .base import Base, TimestampCreatedMixin, UTCDateTime, utc_now

if TYPE_CHECKING:
    from .campaign import Campaign
    from .monster import MonsterInstance


class Combatant(Base, TimestampCreatedMixin):
    """A participant in combat.

    Attributes:
        id: Primary key
        campaign_id: Foreign key to campaign
        name: Display name
        type: One of PC/NPC/Monster
        initiative: Initiative score, higher acts first
        ac: Armor class
        current_hp: Current hit points (>= 0)
        max_hp: Maximum hit points (>= 1)
        save_strength..save_charisma: Saving-throw modifiers
        character_class: Optional class name (PCs)
        level: Optional character level (PCs)
        notes: Free-text notes
    """

    __tablename__ = "combatants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    campaign_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    initiative: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ac: Mapped[int] = mapped_column(Integer, nullable=False)
    current_hp: Mapped[int] = mapped_column(Integer, nullable=False)
    max_hp: Mapped[int] = mapped_column(Integer, nullable=False)

    save_strength: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    save_dexterity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    save_constitution: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    save_intelligence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    save_wisdom: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    save_charisma: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    character_class: Mapped[str | None] = mapped_column(String(100), nullable=True)
    level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    campaign: Mapped["Campaign"] = relationship("Campaign", back_populates="combatants")
    conditions: Mapped[list["CombatantCondition"]] = relationship(
        "CombatantCondition",
        back_populates="combatant",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=lambda: [CombatantCondition.applied_at, CombatantCondition.id],
    )
    monster_instance: Mapped[Optional["MonsterInstance"]] = relationship(
        "MonsterInstance", back_populates="combatant", passive_deletes=True, uselist=False
    )

    __table_args__ = (
        CheckConstraint(f"type IN {sql_in(CombatantType)}", name="ck_combatants_type"),
        CheckConstraint("current_hp >= 0", name="ck_combatants_current_hp"),
        CheckConstraint("max_hp >= 1", name="ck_combatants_max_hp"),
        Index("idx_combatants_campaign", "campaign_id"),
        Index("idx_combatants_initiative", "initiative"),
    )

    def __repr__(self) -> str:
        return (
            f"<Combatant(id={self.id}, name='{self.name}', type='{self.type}', "
            f"hp={self.current_hp}/{self.max_hp})>"
        )


class CombatantCondition(Base):
    """A condition currently affecting a combatant."""

    __tablename__ = "combatant_conditions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    combatant_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("combatants.id", ondelete="CASCADE"), nullable=False
    )
    condition: Mapped[str] = mapped_column(String(50), nullable=False)
    applied_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=utc_now
    )

    combatant: Mapped["Combatant"] = relationship("Combatant", back_populates="conditions")

    __table_args__ = (
        CheckConstraint(
            f"condition IN {sql_in(Condition)}", name="ck_combatant_conditions_condition"
        ),
        Index("idx_combatant_conditions_combatant", "combatant_id"),
    )

    def __repr__(self) -> str:
        return f"<CombatantCondition(combatant={self.combatant_id}, condition='{self.condition}')>"
