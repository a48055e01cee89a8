"""Tests for the campaign CRUD service."""

from __future__ import annotations

import pytest

from siegekeeper.database import count_rows
from siegekeeper.errors import (
    CampaignNotFoundError,
    EntityNotFoundError,
    SnapshotValidationError,
)
from siegekeeper.services import ability_modifier, average_hit_points


@pytest.mark.parametrize(
    ("formula", "expected"),
    [("2d6", 7), ("4d8+4", 22), ("3d10 + 9", 25), ("1d4", 2), (None, 10), ("", 10), ("lots", 10)],
)
def test_average_hit_points(formula, expected):
    assert average_hit_points(formula) == expected


@pytest.mark.parametrize(("score", "expected"), [(1, -5), (8, -1), (10, 0), (15, 2), (30, 10)])
def test_ability_modifier(score, expected):
    assert ability_modifier(score) == expected


def test_ability_modifier_missing_score_counts_as_ten():
    assert ability_modifier(None) == 0


def test_create_campaign_adds_default_siege_state(service):
    campaign = service.create_campaign("Barovia")

    siege = service.get_siege_state(campaign.id)
    assert campaign.name == "Barovia"
    assert campaign.created_at is not None
    assert (siege.wall_integrity, siege.defender_morale, siege.supplies) == (100, 100, 100)
    assert siege.day_of_siege == 1
    assert siege.custom_metrics == {}


def test_create_campaign_rejects_blank_name(service):
    with pytest.raises(SnapshotValidationError):
        service.create_campaign("")


def test_list_campaigns_most_recent_first(service):
    first = service.create_campaign("First")
    second = service.create_campaign("Second")

    assert [c.id for c in service.list_campaigns()] == [second.id, first.id]

    touched = service.touch(first.id)

    assert touched.updated_at >= second.updated_at
    assert [c.id for c in service.list_campaigns()] == [first.id, second.id]


def test_touch_only_changes_updated_at(service):
    campaign = service.create_campaign("Waterdeep")

    touched = service.touch(campaign.id)

    assert touched.name == campaign.name
    assert touched.created_at == service.get_campaign(campaign.id).created_at
    assert touched.updated_at >= campaign.updated_at


def test_touch_missing_campaign_raises(service):
    with pytest.raises(CampaignNotFoundError):
        service.touch(999)


def test_rename_campaign(service):
    campaign = service.create_campaign("Old Name")

    renamed = service.rename_campaign(campaign.id, "New Name")

    assert renamed.name == "New Name"
    assert service.get_campaign(campaign.id).name == "New Name"


def test_delete_campaign_cascades_to_owned_rows(service, session_factory, siege_campaign):
    service.delete_campaign(siege_campaign)

    with pytest.raises(CampaignNotFoundError):
        service.get_campaign(siege_campaign)
    with session_factory() as session:
        for table in ("combatants", "combatant_conditions", "monster_instances", "siege_notes"):
            assert count_rows(session, table) == 0


def test_delete_missing_campaign_raises(service):
    with pytest.raises(CampaignNotFoundError):
        service.delete_campaign(12345)


def test_add_combatant_validates_hit_points(service):
    campaign = service.create_campaign("Validation")

    with pytest.raises(SnapshotValidationError):
        service.add_combatant(
            campaign.id,
            {"name": "Overhealed", "type": "NPC", "ac": 10, "current_hp": 12, "max_hp": 10},
        )


def test_add_combatant_to_missing_campaign(service):
    with pytest.raises(CampaignNotFoundError):
        service.add_combatant(
            77, {"name": "Lost", "type": "NPC", "ac": 10, "current_hp": 5, "max_hp": 5}
        )


def test_update_combatant_hp_is_clamped(service):
    campaign = service.create_campaign("Clamp")
    hero = service.add_combatant(
        campaign.id, {"name": "Hero", "type": "PC", "ac": 15, "current_hp": 20, "max_hp": 25}
    )

    assert service.update_combatant_hp(hero.id, 40).current_hp == 25
    assert service.update_combatant_hp(hero.id, -8).current_hp == 0
    assert service.update_combatant_hp(hero.id, 12).current_hp == 12


def test_update_hp_of_missing_combatant(service):
    with pytest.raises(EntityNotFoundError) as exc_info:
        service.update_combatant_hp(31337, 5)

    assert exc_info.value.kind == "combatant"


def test_conditions_add_and_remove(service):
    campaign = service.create_campaign("Conditions")
    hero = service.add_combatant(
        campaign.id, {"name": "Hero", "type": "PC", "ac": 15, "current_hp": 20, "max_hp": 25}
    )

    entry = service.add_condition(hero.id, "stunned")
    service.add_condition(hero.id, "frightened")

    assert entry.condition == "stunned"
    assert entry.applied_at is not None
    assert service.remove_condition(hero.id, "stunned") == 1
    assert service.remove_condition(hero.id, "stunned") == 0
    snapshot = service.export_campaign(campaign.id)
    assert [c.condition for c in snapshot.combatants[0].conditions] == ["frightened"]


def test_unknown_condition_is_rejected(service):
    campaign = service.create_campaign("Conditions")
    hero = service.add_combatant(
        campaign.id, {"name": "Hero", "type": "PC", "ac": 15, "current_hp": 20, "max_hp": 25}
    )

    with pytest.raises(SnapshotValidationError) as exc_info:
        service.add_condition(hero.id, "sleepy")

    assert "poisoned" in exc_info.value.details["allowed"]


def test_monster_instance_derives_combat_stats(service, siege_campaign):
    snapshot = service.export_campaign(siege_campaign)
    sapper = next(c for c in snapshot.combatants if c.type == "Monster")

    assert sapper.name == "Goblin Sapper"
    assert sapper.initiative == 12
    assert sapper.ac == 15
    assert (sapper.current_hp, sapper.max_hp) == (7, 7)
    assert sapper.save_strength == -1
    assert sapper.save_dexterity == 2
    assert sapper.save_constitution == 0
    assert sapper.save_wisdom == -1
    assert sapper.notes == "Monster instance of Goblin"


def test_monster_instance_prefers_listed_saves(service):
    campaign = service.create_campaign("Saves")
    ogre = service.create_monster(
        campaign.id,
        {
            "name": "Ogre",
            "ac": 11,
            "hp_formula": "7d10+21",
            "stat_str": 19,
            "stat_con": 16,
            "saves": {"strength": 7},
        },
    )

    spawned = service.create_monster_instance(ogre.id)

    assert spawned.combatant.name == "Ogre"
    assert spawned.instance.instance_name == "Ogre"
    assert spawned.combatant.max_hp == 59
    assert spawned.combatant.save_strength == 7
    assert spawned.combatant.save_constitution == 3
    assert spawned.template.id == ogre.id


def test_update_siege_validates_and_merges(service):
    campaign = service.create_campaign("Siege")

    updated = service.update_siege(campaign.id, supplies=40, custom_metrics={"ballistae": 2})

    assert updated.supplies == 40
    assert updated.wall_integrity == 100
    assert updated.custom_metrics == {"ballistae": 2}
    with pytest.raises(SnapshotValidationError):
        service.update_siege(campaign.id, defender_morale=120)
    with pytest.raises(SnapshotValidationError):
        service.update_siege(campaign.id, catapults=3)
    with pytest.raises(SnapshotValidationError):
        service.update_siege(campaign.id)
    assert service.get_siege_state(campaign.id).defender_morale == 100


def test_siege_notes_keep_order(service):
    campaign = service.create_campaign("Notes")

    service.add_siege_note(campaign.id, "Day one")
    service.add_siege_note(campaign.id, "Day two")

    notes = service.get_siege_state(campaign.id).notes
    assert [note.note_text for note in notes] == ["Day one", "Day two"]


def test_plot_points_require_existing_location(service):
    with pytest.raises(EntityNotFoundError):
        service.add_plot_point(404, {"name": "Nowhere"})


def test_preferences_are_upserted(service):
    campaign = service.create_campaign("Prefs")

    service.set_preference(campaign.id, "theme", "dark")
    service.set_preference(campaign.id, "theme", "light")
    service.set_preference(campaign.id, "modules", ["siege", "map"])

    assert service.get_preferences(campaign.id) == {
        "modules": ["siege", "map"],
        "theme": "light",
    }


def test_duplicate_campaign(service, siege_campaign):
    copy = service.duplicate_campaign(siege_campaign)

    assert copy.name == "Siege of Neverwinter (copy)"
    assert copy.id != siege_campaign
    assert service.get_campaign(copy.id).name == copy.name
    named = service.duplicate_campaign(siege_campaign, "Rehearsal")
    assert named.name == "Rehearsal"


def test_duplicate_missing_campaign(service):
    with pytest.raises(CampaignNotFoundError):
        service.duplicate_campaign(555)


def test_duplicate_of_long_name_stays_within_name_limit(service):
    campaign = service.create_campaign("N" * 250)

    copy = service.duplicate_campaign(campaign.id)

    assert len(copy.name) == 255
    assert copy.name.endswith(" (copy)")
    assert service.export_campaign(copy.id).campaign.name == copy.name
    again = service.duplicate_campaign(copy.id)
    assert len(again.name) <= 255


def test_import_campaign_from_json_text(service, siege_campaign):
    text = service.export_campaign(siege_campaign).model_dump_json(by_alias=True)

    restored = service.import_campaign(text, name="Imported")

    assert restored.name == "Imported"
    assert len(service.list_campaigns()) == 2
