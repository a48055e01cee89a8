"""Monster template and monster instance models.

A monster template is a reusable stat block. Each instance links the template
to a combatant of type ``Monster`` that carries its own hit-point pool.
"""

from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampCreatedMixin

if TYPE_CHECKING:
    from .campaign import Campaign
    from .combatant import Combatant


class Monster(Base, TimestampCreatedMixin):
    """Reusable monster stat block scoped to a campaign.

    Attributes:
        id: Primary key
        campaign_id: Foreign key to campaign
        name: Monster name
        ac: Armor class
        hp_formula: Dice formula such as ``6d8+6``
        speed: Movement description
        stat_str..stat_cha: Ability scores
        saves: JSON map of saving-throw overrides
        skills: JSON map of skill bonuses
        resistances: JSON list of damage resistances
        immunities: JSON list of damage/condition immunities
        senses: Senses line
        languages: Languages line
        cr: Challenge rating as text (``1/4``, ``2`` ...)
        attacks: JSON list of attack records
        abilities: JSON list of special ability records
        lore: Background text
    """

    __tablename__ = "monsters"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    campaign_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    ac: Mapped[int] = mapped_column(Integer, nullable=False)
    hp_formula: Mapped[str | None] = mapped_column(String(50), nullable=True)
    speed: Mapped[str | None] = mapped_column(String(100), nullable=True)

    stat_str: Mapped[int | None] = mapped_column(Integer, nullable=True)
    stat_dex: Mapped[int | None] = mapped_column(Integer, nullable=True)
    stat_con: Mapped[int | None] = mapped_column(Integer, nullable=True)
    stat_int: Mapped[int | None] = mapped_column(Integer, nullable=True)
    stat_wis: Mapped[int | None] = mapped_column(Integer, nullable=True)
    stat_cha: Mapped[int | None] = mapped_column(Integer, nullable=True)

    saves: Mapped[dict[str, int]] = mapped_column(JSON, nullable=False, default=dict)
    skills: Mapped[dict[str, int]] = mapped_column(JSON, nullable=False, default=dict)
    resistances: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    immunities: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    senses: Mapped[str | None] = mapped_column(String(255), nullable=True)
    languages: Mapped[str | None] = mapped_column(String(255), nullable=True)
    cr: Mapped[str | None] = mapped_column(String(20), nullable=True)
    attacks: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    abilities: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    lore: Mapped[str | None] = mapped_column(Text, nullable=True)

    campaign: Mapped["Campaign"] = relationship("Campaign", back_populates="monsters")
    instances: Mapped[list["MonsterInstance"]] = relationship(
        "MonsterInstance",
        back_populates="monster",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (Index("idx_monsters_campaign", "campaign_id"),)

    def __repr__(self) -> str:
        return f"<Monster(id={self.id}, name='{self.name}', cr='{self.cr}')>"


class MonsterInstance(Base, TimestampCreatedMixin):
    """Link between a monster template and the combatant fighting as it."""

    __tablename__ = "monster_instances"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    monster_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("monsters.id", ondelete="CASCADE"), nullable=False
    )
    combatant_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("combatants.id", ondelete="CASCADE"), nullable=False
    )
    instance_name: Mapped[str] = mapped_column(String(255), nullable=False)

    monster: Mapped["Monster"] = relationship("Monster", back_populates="instances")
    combatant: Mapped["Combatant"] = relationship("Combatant", back_populates="monster_instance")

    __table_args__ = (
        UniqueConstraint("combatant_id", name="uq_monster_instances_combatant"),
        Index("idx_monster_instances_monster", "monster_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<MonsterInstance(id={self.id}, monster={self.monster_id}, "
            f"combatant={self.combatant_id})>"
        )
