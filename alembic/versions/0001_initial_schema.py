"""Initial campaign schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18 09:12:44.118203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

COMBATANT_TYPES = "('PC', 'NPC', 'Monster')"
CONDITIONS = (
    "('blinded', 'charmed', 'deafened', 'exhaustion', 'frightened', 'grappled', "
    "'incapacitated', 'invisible', 'paralyzed', 'petrified', 'poisoned', 'prone', "
    "'restrained', 'stunned', 'unconscious')"
)
LOCATION_STATUSES = "('controlled', 'contested', 'enemy', 'destroyed')"
PLOT_POINT_STATUSES = "('active', 'completed', 'failed')"


def _created_at() -> sa.Column:
    return sa.Column(
        'created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        'updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )


def _campaign_fk() -> sa.Column:
    return sa.Column(
        'campaign_id',
        sa.Integer(),
        sa.ForeignKey('campaigns.id', ondelete='CASCADE'),
        nullable=False,
    )


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'campaigns',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        _created_at(),
        _updated_at(),
    )

    op.create_table(
        'combatants',
        sa.Column('id', sa.Integer(), primary_key=True),
        _campaign_fk(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('initiative', sa.Integer(), nullable=False),
        sa.Column('ac', sa.Integer(), nullable=False),
        sa.Column('current_hp', sa.Integer(), nullable=False),
        sa.Column('max_hp', sa.Integer(), nullable=False),
        sa.Column('save_strength', sa.Integer(), nullable=False),
        sa.Column('save_dexterity', sa.Integer(), nullable=False),
        sa.Column('save_constitution', sa.Integer(), nullable=False),
        sa.Column('save_intelligence', sa.Integer(), nullable=False),
        sa.Column('save_wisdom', sa.Integer(), nullable=False),
        sa.Column('save_charisma', sa.Integer(), nullable=False),
        sa.Column('character_class', sa.String(length=100), nullable=True),
        sa.Column('level', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        _created_at(),
        sa.CheckConstraint(f'type IN {COMBATANT_TYPES}', name='ck_combatants_type'),
        sa.CheckConstraint('current_hp >= 0', name='ck_combatants_current_hp'),
        sa.CheckConstraint('max_hp >= 1', name='ck_combatants_max_hp'),
    )
    op.create_index('idx_combatants_campaign', 'combatants', ['campaign_id'])
    op.create_index('idx_combatants_initiative', 'combatants', ['initiative'])

    op.create_table(
        'combatant_conditions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column(
            'combatant_id',
            sa.Integer(),
            sa.ForeignKey('combatants.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('condition', sa.String(length=50), nullable=False),
        sa.Column('applied_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            f'condition IN {CONDITIONS}', name='ck_combatant_conditions_condition'
        ),
    )
    op.create_index(
        'idx_combatant_conditions_combatant', 'combatant_conditions', ['combatant_id']
    )

    op.create_table(
        'monsters',
        sa.Column('id', sa.Integer(), primary_key=True),
        _campaign_fk(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('ac', sa.Integer(), nullable=False),
        sa.Column('hp_formula', sa.String(length=50), nullable=True),
        sa.Column('speed', sa.String(length=100), nullable=True),
        sa.Column('stat_str', sa.Integer(), nullable=True),
        sa.Column('stat_dex', sa.Integer(), nullable=True),
        sa.Column('stat_con', sa.Integer(), nullable=True),
        sa.Column('stat_int', sa.Integer(), nullable=True),
        sa.Column('stat_wis', sa.Integer(), nullable=True),
        sa.Column('stat_cha', sa.Integer(), nullable=True),
        sa.Column('saves', sa.JSON(), nullable=False),
        sa.Column('skills', sa.JSON(), nullable=False),
        sa.Column('resistances', sa.JSON(), nullable=False),
        sa.Column('immunities', sa.JSON(), nullable=False),
        sa.Column('senses', sa.String(length=255), nullable=True),
        sa.Column('languages', sa.String(length=255), nullable=True),
        sa.Column('cr', sa.String(length=20), nullable=True),
        sa.Column('attacks', sa.JSON(), nullable=False),
        sa.Column('abilities', sa.JSON(), nullable=False),
        sa.Column('lore', sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index('idx_monsters_campaign', 'monsters', ['campaign_id'])

    op.create_table(
        'monster_instances',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column(
            'monster_id',
            sa.Integer(),
            sa.ForeignKey('monsters.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column(
            'combatant_id',
            sa.Integer(),
            sa.ForeignKey('combatants.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('instance_name', sa.String(length=255), nullable=False),
        _created_at(),
        sa.UniqueConstraint('combatant_id', name='uq_monster_instances_combatant'),
    )
    op.create_index('idx_monster_instances_monster', 'monster_instances', ['monster_id'])

    op.create_table(
        'siege_state',
        sa.Column('id', sa.Integer(), primary_key=True),
        _campaign_fk(),
        sa.Column('wall_integrity', sa.Integer(), nullable=False),
        sa.Column('defender_morale', sa.Integer(), nullable=False),
        sa.Column('supplies', sa.Integer(), nullable=False),
        sa.Column('day_of_siege', sa.Integer(), nullable=False),
        sa.Column('custom_metrics', sa.JSON(), nullable=False),
        _created_at(),
        _updated_at(),
        sa.CheckConstraint(
            'wall_integrity >= 0 AND wall_integrity <= 100', name='ck_siege_state_wall_integrity'
        ),
        sa.CheckConstraint(
            'defender_morale >= 0 AND defender_morale <= 100',
            name='ck_siege_state_defender_morale',
        ),
        sa.CheckConstraint('supplies >= 0 AND supplies <= 100', name='ck_siege_state_supplies'),
        sa.CheckConstraint('day_of_siege >= 1', name='ck_siege_state_day'),
        sa.UniqueConstraint('campaign_id', name='uq_siege_state_campaign'),
    )

    op.create_table(
        'siege_notes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column(
            'siege_state_id',
            sa.Integer(),
            sa.ForeignKey('siege_state.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('note_text', sa.Text(), nullable=False),
        _created_at(),
    )
    op.create_index('idx_siege_notes_siege_state', 'siege_notes', ['siege_state_id'])

    op.create_table(
        'locations',
        sa.Column('id', sa.Integer(), primary_key=True),
        _campaign_fk(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=50), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('coord_x', sa.Integer(), nullable=True),
        sa.Column('coord_y', sa.Integer(), nullable=True),
        sa.Column('coord_width', sa.Integer(), nullable=True),
        sa.Column('coord_height', sa.Integer(), nullable=True),
        _created_at(),
        sa.CheckConstraint(f'status IN {LOCATION_STATUSES}', name='ck_locations_status'),
    )
    op.create_index('idx_locations_campaign', 'locations', ['campaign_id'])

    op.create_table(
        'plot_points',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column(
            'location_id',
            sa.Integer(),
            sa.ForeignKey('locations.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=False),
        sa.Column('coord_x', sa.Integer(), nullable=True),
        sa.Column('coord_y', sa.Integer(), nullable=True),
        _created_at(),
        sa.CheckConstraint(f'status IN {PLOT_POINT_STATUSES}', name='ck_plot_points_status'),
    )
    op.create_index('idx_plot_points_location', 'plot_points', ['location_id'])

    op.create_table(
        'user_preferences',
        sa.Column('id', sa.Integer(), primary_key=True),
        _campaign_fk(),
        sa.Column('preference_key', sa.String(length=100), nullable=False),
        sa.Column('preference_value', sa.JSON(none_as_null=True), nullable=True),
        _created_at(),
        _updated_at(),
        sa.UniqueConstraint('campaign_id', 'preference_key', name='uq_user_preferences_key'),
    )


def downgrade() -> None:
    """Downgrade schema."""
    for table in (
        'user_preferences',
        'plot_points',
        'locations',
        'siege_notes',
        'siege_state',
        'monster_instances',
        'monsters',
        'combatant_conditions',
        'combatants',
        'campaigns',
    ):
        op.drop_table(table)
