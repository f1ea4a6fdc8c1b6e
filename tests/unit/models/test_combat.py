"""Tests for combat snapshot and command models."""

from __future__ import annotations

from typing import Any

import pytest
from pydantic import ValidationError

from dnd_combat.models.combat import (
    ActionChoice,
    ActionResult,
    CombatStateSnapshot,
    InitiativeEntry,
    TargetInfo,
)
from dnd_combat.models.enums import ActionType, EventType
from dnd_combat.models.events import GameEvent, ResourceDetails, make_event


class TestInitiativeEntry:
    """Tests for initiative ordering keys."""

    def test_sort_order(self) -> None:
        """Test roll, then DEX modifier, then submission order."""
        rows = [
            ("late", 12, 1, 3),
            ("fast", 18, 0, 2),
            ("nimble", 12, 3, 1),
            ("first", 12, 1, 0),
        ]
        entries = [
            InitiativeEntry(
                creature_id=creature_id,
                initiative_roll=roll,
                dexterity_modifier=dex,
                submission_index=index,
            )
            for creature_id, roll, dex, index in rows
        ]

        ordered = sorted(entries, key=lambda entry: entry.sort_key)

        assert [entry.creature_id for entry in ordered] == ["fast", "nimble", "first", "late"]


class TestCombatStateSnapshot:
    """Tests for snapshot lookups."""

    def test_lookups(self, make_creature: Any) -> None:
        """Test combatant and initiative lookups by id."""
        snapshot = CombatStateSnapshot(
            round_number=1,
            combatants=[make_creature("a"), make_creature("b")],
            initiative_order=[
                InitiativeEntry(creature_id="b", initiative_roll=15),
                InitiativeEntry(creature_id="a", initiative_roll=5),
            ],
        )

        assert snapshot.get_combatant("a").id == "a"
        assert snapshot.get_combatant("zzz") is None
        assert snapshot.initiative_index("a") == 1
        assert snapshot.initiative_index("zzz") is None

    def test_deep_copy_is_independent(self, make_creature: Any) -> None:
        """Test a deep copy does not share creature state."""
        snapshot = CombatStateSnapshot(combatants=[make_creature("a", hp=10)])

        copied = snapshot.model_copy(deep=True)
        copied.combatants[0].current_hp = 1

        assert snapshot.combatants[0].current_hp == 10


class TestActionChoice:
    """Tests for action commands."""

    def test_target_ids(self) -> None:
        """Test target ids come from target info."""
        choice = ActionChoice(
            actor_id="a",
            action_type=ActionType.ATTACK,
            target_info=TargetInfo(creature_ids=["b", "c"]),
        )

        assert choice.target_ids == ["b", "c"]

    def test_target_ids_empty_without_info(self) -> None:
        """Test a choice without targets reports none."""
        assert ActionChoice(actor_id="a", action_type="DODGE").target_ids == []

    def test_unknown_action_type_kept_as_text(self) -> None:
        """Test unrecognized action types survive validation for the engine to reject."""
        choice = ActionChoice(actor_id="a", action_type="FLY")

        assert choice.action_type == "FLY"

    def test_rejects_fields_the_engine_does_not_read(self) -> None:
        """Test a choice only carries fields the turn manager dispatches on."""
        with pytest.raises(ValidationError):
            ActionChoice(actor_id="a", action_type="ABILITY", feature_id="SECOND_WIND")


class TestEvents:
    """Tests for event construction."""

    def test_make_event_dumps_details(self) -> None:
        """Test typed details are stored as plain dictionaries."""
        event = make_event(
            EventType.RESOURCE_SPENT,
            details=ResourceDetails(resource_id="KI", amount=1, remaining=2),
            source_creature_id="monk-1",
            description="Monk spends 1 KI",
        )

        assert isinstance(event, GameEvent)
        assert event.details == {"resource_id": "KI", "amount": 1, "remaining": 2}
        assert event.source_creature_id == "monk-1"

    def test_failed_result_has_no_events(self) -> None:
        """Test a failed result defaults to an empty event list."""
        result = ActionResult(success=False, reason="No target")

        assert result.events == []
