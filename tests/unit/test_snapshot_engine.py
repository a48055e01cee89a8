"""Tests for capturing a campaign and restoring it as an independent copy."""

from __future__ import annotations

import asyncio

import pytest

from siegekeeper.database import count_rows
from siegekeeper.errors import (
    CampaignNotFoundError,
    MissingMappingError,
    SnapshotIntegrityError,
    SnapshotValidationError,
)
from siegekeeper.snapshot import (
    SnapshotRestorer,
    capture,
    capture_campaign,
    dangling_references,
    dump_snapshot,
    restore,
    strip_identifiers,
)

OWNED_TABLES = (
    "combatants",
    "combatant_conditions",
    "monsters",
    "monster_instances",
    "siege_state",
    "siege_notes",
    "locations",
    "plot_points",
    "user_preferences",
)


def _row_counts(session_factory) -> dict[str, int]:
    with session_factory() as session:
        return {table: count_rows(session, table) for table in ("campaigns", *OWNED_TABLES)}


def test_capture_collects_every_entity_kind(session_factory, siege_campaign):
    snapshot = capture_campaign(siege_campaign, session_factory=session_factory)

    assert snapshot.campaign.id == siege_campaign
    assert [c.name for c in snapshot.combatants] == ["Aria", "Goblin Sapper"]
    aria, sapper = snapshot.combatants
    assert [entry.condition for entry in aria.conditions] == ["poisoned", "prone"]
    assert sapper.conditions == []
    assert sapper.type == "Monster"
    assert len(snapshot.monsters) == 1
    assert snapshot.monsters[0].attacks[0].name == "Scimitar"
    assert snapshot.monster_instances[0].combatant_id == sapper.id
    assert snapshot.monster_instances[0].monster_id == snapshot.monsters[0].id
    assert snapshot.siege_state is not None
    assert snapshot.siege_state.wall_integrity == 75
    assert snapshot.siege_state.custom_metrics == {"towers_standing": 3}
    assert [note.note_text for note in snapshot.siege_state.notes] == [
        "The eastern wall took a breach overnight.",
        "Rations cut to half.",
    ]
    assert [point.name for point in snapshot.locations[0].plot_points] == [
        "Sappers below",
        "Traitor guard",
    ]
    assert snapshot.preferences[0].preference_value == {"panels": ["initiative", "siege"]}


def test_capture_of_empty_campaign_uses_empty_lists(session_factory, service):
    campaign = service.create_campaign("Quiet Keep")

    snapshot = capture_campaign(campaign.id, session_factory=session_factory)

    assert snapshot.combatants == []
    assert snapshot.monsters == []
    assert snapshot.monster_instances == []
    assert snapshot.locations == []
    assert snapshot.preferences == []
    assert snapshot.siege_state is not None
    assert snapshot.siege_state.notes == []


def test_capture_missing_campaign_raises_not_found(session_factory):
    with session_factory() as session, pytest.raises(CampaignNotFoundError) as exc_info:
        capture(session, 404)

    assert exc_info.value.campaign_id == 404
    assert isinstance(exc_info.value, LookupError)


def test_capture_is_idempotent(session_factory, siege_campaign):
    first = capture_campaign(siege_campaign, session_factory=session_factory)
    second = capture_campaign(siege_campaign, session_factory=session_factory)

    assert dump_snapshot(first) == dump_snapshot(second)


def test_captured_references_resolve_inside_snapshot(session_factory, siege_campaign):
    snapshot = capture_campaign(siege_campaign, session_factory=session_factory)

    assert dangling_references(snapshot) == []


def test_round_trip_preserves_structure(session_factory, siege_campaign):
    original = capture_campaign(siege_campaign, session_factory=session_factory)

    restored = restore(original, session_factory=session_factory)
    copy = capture_campaign(restored.id, session_factory=session_factory)

    assert restored.id != siege_campaign
    assert restored.source_id == siege_campaign
    assert restored.name == "Siege of Neverwinter"
    assert strip_identifiers(copy) == strip_identifiers(original)


def test_restore_scenario_counts(session_factory, siege_campaign):
    original = capture_campaign(siege_campaign, session_factory=session_factory)

    restored = restore(original, session_factory=session_factory)
    copy = capture_campaign(restored.id, session_factory=session_factory)

    assert restored.counts == original.counts()
    assert [len(c.conditions) for c in copy.combatants] == [2, 0]
    assert len(copy.monsters) == 1
    assert len(copy.monster_instances) == 1
    instance = copy.monster_instances[0]
    assert instance.combatant_id in {c.id for c in copy.combatants}
    assert instance.monster_id == copy.monsters[0].id
    assert instance.combatant_id not in {c.id for c in original.combatants}
    assert copy.siege_state is not None
    assert copy.siege_state.wall_integrity == 75
    assert len(copy.siege_state.notes) == 2
    assert len(copy.locations) == 1
    assert len(copy.locations[0].plot_points) == 2
    assert len(copy.preferences) == 1


def test_restore_accepts_raw_documents_and_name_override(session_factory, siege_campaign):
    document = dump_snapshot(capture_campaign(siege_campaign, session_factory=session_factory))

    restored = restore(document, name="Neverwinter (rehearsal)", session_factory=session_factory)

    assert restored.name == "Neverwinter (rehearsal)"
    assert restored.counts["combatants"] == 2


def test_restored_campaign_is_independent(service, session_factory, siege_campaign):
    original = capture_campaign(siege_campaign, session_factory=session_factory)
    restored = restore(original, session_factory=session_factory)
    copy = capture_campaign(restored.id, session_factory=session_factory)

    copied_aria = next(c for c in copy.combatants if c.name == "Aria")
    service.update_combatant_hp(copied_aria.id, 1)
    service.update_siege(restored.id, wall_integrity=10)

    source = capture_campaign(siege_campaign, session_factory=session_factory)
    source_aria = next(c for c in source.combatants if c.name == "Aria")
    assert source_aria.current_hp == 30
    assert source.siege_state is not None
    assert source.siege_state.wall_integrity == 75


def test_deleting_source_keeps_restored_copy(service, session_factory, siege_campaign):
    restored = restore(
        capture_campaign(siege_campaign, session_factory=session_factory),
        session_factory=session_factory,
    )

    service.delete_campaign(siege_campaign)

    copy = capture_campaign(restored.id, session_factory=session_factory)
    assert len(copy.combatants) == 2
    assert len(copy.monster_instances) == 1


def test_orphaned_instance_fails_without_creating_campaign(session_factory, siege_campaign):
    document = dump_snapshot(capture_campaign(siege_campaign, session_factory=session_factory))
    document["monsterInstances"][0]["monster_id"] = 987654
    before = _row_counts(session_factory)

    with pytest.raises(MissingMappingError) as exc_info:
        restore(document, session_factory=session_factory)

    assert isinstance(exc_info.value, SnapshotIntegrityError)
    assert exc_info.value.kind == "monster"
    assert _row_counts(session_factory) == before


def test_instance_bound_to_non_monster_fails(session_factory, siege_campaign):
    document = dump_snapshot(capture_campaign(siege_campaign, session_factory=session_factory))
    pc_id = next(c["id"] for c in document["combatants"] if c["type"] == "PC")
    document["monsterInstances"][0]["combatant_id"] = pc_id
    before = _row_counts(session_factory)

    with pytest.raises(SnapshotIntegrityError):
        restore(document, session_factory=session_factory)

    assert _row_counts(session_factory) == before


def test_failure_on_second_combatant_rolls_back_everything(
    monkeypatch, session_factory, siege_campaign
):
    snapshot = capture_campaign(siege_campaign, session_factory=session_factory)
    before = _row_counts(session_factory)
    original_insert = SnapshotRestorer._insert_combatant
    calls: list[int] = []

    def insert_with_violation(self, campaign_id, item):
        calls.append(item.id)
        if len(calls) == 2:
            # Negative hit points pass straight to the database check constraint.
            item = item.model_copy(update={"current_hp": -5})
        return original_insert(self, campaign_id, item)

    monkeypatch.setattr(SnapshotRestorer, "_insert_combatant", insert_with_violation)

    with pytest.raises(SnapshotIntegrityError) as exc_info:
        restore(snapshot, session_factory=session_factory)

    assert "reason" in exc_info.value.details
    assert len(calls) == 2
    assert _row_counts(session_factory) == before


def test_cancellation_also_rolls_back(monkeypatch, session_factory, siege_campaign):
    snapshot = capture_campaign(siege_campaign, session_factory=session_factory)
    before = _row_counts(session_factory)

    def interrupted(self, campaign_id, item):
        raise asyncio.CancelledError

    monkeypatch.setattr(SnapshotRestorer, "_insert_location", interrupted)

    with pytest.raises(asyncio.CancelledError):
        restore(snapshot, session_factory=session_factory)

    assert _row_counts(session_factory) == before


def test_invalid_document_is_rejected_before_writing(session_factory, siege_campaign):
    document = dump_snapshot(capture_campaign(siege_campaign, session_factory=session_factory))
    document["combatants"][0]["current_hp"] = document["combatants"][0]["max_hp"] + 1
    before = _row_counts(session_factory)

    with pytest.raises(SnapshotValidationError):
        restore(document, session_factory=session_factory)

    assert _row_counts(session_factory) == before


def test_mutated_snapshot_model_is_revalidated(session_factory, siege_campaign):
    snapshot = capture_campaign(siege_campaign, session_factory=session_factory)
    snapshot.combatants[0].current_hp = 10_000

    with pytest.raises(SnapshotValidationError):
        restore(snapshot, session_factory=session_factory)


@pytest.mark.parametrize("name", ["", "x" * 400])
def test_bad_name_override_is_rejected_before_writing(session_factory, siege_campaign, name):
    document = dump_snapshot(capture_campaign(siege_campaign, session_factory=session_factory))
    before = _row_counts(session_factory)

    with pytest.raises(SnapshotValidationError):
        restore(document, name=name, session_factory=session_factory)

    assert _row_counts(session_factory) == before


@pytest.mark.parametrize(
    ("section", "field", "value"),
    [
        ("locations", "coord_x", 2**70),
        ("locations", "coord_height", -1),
        ("combatants", "ac", 10_000),
    ],
)
def test_out_of_range_integers_are_rejected_before_writing(
    session_factory, siege_campaign, section, field, value
):
    document = dump_snapshot(capture_campaign(siege_campaign, session_factory=session_factory))
    document[section][0][field] = value
    before = _row_counts(session_factory)

    with pytest.raises(SnapshotValidationError):
        restore(document, session_factory=session_factory)

    assert _row_counts(session_factory) == before


def test_day_of_siege_beyond_integer_column_is_rejected(session_factory, siege_campaign):
    document = dump_snapshot(capture_campaign(siege_campaign, session_factory=session_factory))
    document["siegeState"]["day_of_siege"] = 2**40
    before = _row_counts(session_factory)

    with pytest.raises(SnapshotValidationError):
        restore(document, session_factory=session_factory)

    assert _row_counts(session_factory) == before


@pytest.mark.asyncio
async def test_concurrent_restores_produce_disjoint_campaigns(session_factory, siege_campaign):
    snapshot = capture_campaign(siege_campaign, session_factory=session_factory)

    first, second = await asyncio.gather(
        asyncio.to_thread(restore, snapshot, session_factory=session_factory),
        asyncio.to_thread(restore, snapshot, session_factory=session_factory),
    )

    assert len({siege_campaign, first.id, second.id}) == 3
    first_copy = capture_campaign(first.id, session_factory=session_factory)
    second_copy = capture_campaign(second.id, session_factory=session_factory)
    assert {c.id for c in first_copy.combatants}.isdisjoint(c.id for c in second_copy.combatants)
