"""Pytest configuration and shared fixtures.

This adds the `src/` directory to `sys.path` so tests can import the
`siegekeeper` package without requiring an editable install in CI, and
provides temporary SQLite databases with the full schema.
"""

import sys
from pathlib import Path

import pytest

SRC_PATH = Path(__file__).resolve().parents[1] / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from siegekeeper.database import create_db_engine, init_db, make_session_factory  # noqa: E402
from siegekeeper.services import CampaignService  # noqa: E402


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite engine with every table created."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'siegekeeper.db'}")
    init_db(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def service(session_factory):
    return CampaignService(session_factory)


@pytest.fixture
def siege_campaign(service):
    """A campaign with a PC, a spawned goblin, siege notes, a location and a preference.

    Returns the campaign identifier.
    """
    campaign = service.create_campaign("Siege of Neverwinter")

    aria = service.add_combatant(
        campaign.id,
        {
            "name": "Aria",
            "type": "PC",
            "initiative": 15,
            "ac": 16,
            "current_hp": 30,
            "max_hp": 32,
            "save_dexterity": 5,
            "save_intelligence": 2,
            "character_class": "Rogue",
            "level": 5,
            "notes": "Scouting the walls",
        },
    )
    service.add_condition(aria.id, "poisoned")
    service.add_condition(aria.id, "prone")

    goblin = service.create_monster(
        campaign.id,
        {
            "name": "Goblin",
            "ac": 15,
            "hp_formula": "2d6",
            "speed": "30 ft.",
            "stat_str": 8,
            "stat_dex": 14,
            "stat_con": 10,
            "stat_int": 10,
            "stat_wis": 8,
            "stat_cha": 8,
            "skills": {"stealth": 6},
            "senses": "darkvision 60 ft.",
            "languages": "Common, Goblin",
            "cr": "1/4",
            "attacks": [{"name": "Scimitar", "bonus": 4, "damage": "1d6+2", "type": "slashing"}],
            "abilities": [{"name": "Nimble Escape", "description": "Disengage as a bonus action"}],
        },
    )
    service.create_monster_instance(goblin.id, "Goblin Sapper", initiative=12)

    service.update_siege(campaign.id, wall_integrity=75, custom_metrics={"towers_standing": 3})
    service.add_siege_note(campaign.id, "The eastern wall took a breach overnight.")
    service.add_siege_note(campaign.id, "Rations cut to half.")

    gate = service.create_location(
        campaign.id,
        {
            "name": "North Gate",
            "status": "contested",
            "description": "Main gatehouse",
            "coord_x": 10,
            "coord_y": 20,
            "coord_width": 40,
            "coord_height": 30,
        },
    )
    service.add_plot_point(gate.id, {"name": "Sappers below", "coord_x": 12, "coord_y": 22})
    service.add_plot_point(gate.id, {"name": "Traitor guard", "status": "completed"})

    service.set_preference(campaign.id, "layout", {"panels": ["initiative", "siege"]})
    return campaign.id
