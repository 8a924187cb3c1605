"""
Tests for the game engine facade.
"""

from datetime import date

import pytest
from bugarena.core import GameEngine
from bugarena.errors import BattleStateError, ContentReferenceError
from bugarena.models import BattlePhase, TurnOwner
from tests.conftest import ScriptedRandom


@pytest.fixture
def engine():
    """Engine over bundled content with every draw at zero."""
    game = GameEngine(rng=ScriptedRandom(default=0.0))
    game.load_content()
    return game


@pytest.fixture
def messages(engine):
    collected = []
    engine.set_message_callback(collected.extend)
    return collected


class TestEngineQueries:
    """Tests for engine lookups."""

    def test_content_loads_on_demand(self):
        game = GameEngine()

        assert game.get_profile().rank == 1
        assert game.content is not None

    def test_capture(self, engine, messages):
        captured = engine.capture("ladybug", location="Backyard")

        assert messages == ["Captured Ladybug!"]
        assert [c.id for c in engine.get_collection()] == [captured.id]
        assert engine.get_profile().total_captures == 1

    def test_first_stage_only(self, engine):
        unlocked = engine.get_unlocked_stages()

        assert [(world.id, stage.id) for world, stage in unlocked] == [(1, 1)]

    def test_active_events(self, engine):
        during = [event.id for event in engine.get_active_events(date(2026, 2, 15))]

        assert during == [1, 2, 3]
        assert engine.get_active_events(date(2026, 2, 25))[0].id == 1
        assert engine.get_active_events(date(2027, 1, 1)) == []


class TestEngineBattles:
    """Tests for battles run through the engine."""

    def test_stage_battle_to_victory(self, engine, messages):
        captured = engine.capture("ladybug")
        battle = engine.start_stage_battle(1, 1, captured.id)

        assert battle.phase == BattlePhase.BATTLE
        assert battle.state.opponent_name == "Bug Master Alex"

        for _ in range(50):
            if battle.is_over:
                break
            if battle.state.turn_owner == TurnOwner.OPPONENT:
                engine.advance_turn()
            else:
                engine.attack()

        assert battle.is_over
        assert battle.player_won
        assert "Victory! Earned 65 coins!" in messages
        assert engine.get_profile().coins == 65
        assert engine.get_profile().battles_won == 1
        assert [(w.id, s.id) for w, s in engine.get_unlocked_stages()] == [(1, 1), (1, 2)]

    def test_locked_stage(self, engine):
        captured = engine.capture("ladybug")

        with pytest.raises(BattleStateError):
            engine.start_stage_battle(1, 2, captured.id)

    def test_capture_challenge_cannot_be_battled(self, engine):
        captured = engine.capture("ladybug")

        with pytest.raises(ContentReferenceError):
            engine.start_event_battle(2, 1, captured.id)

    def test_event_battle_starts(self, engine, messages):
        captured = engine.capture("ladybug")

        battle = engine.start_event_battle(1, 1, captured.id)

        assert battle.phase == BattlePhase.BATTLE
        assert messages[1] == "Domain Expansion: First Wave - START!"
        assert battle.setup.rules.regen_amount == 20

    def test_new_battle_closes_previous(self, engine):
        captured = engine.capture("ladybug")
        first = engine.start_stage_battle(1, 1, captured.id)

        engine.start_event_battle(1, 1, captured.id)

        assert first.closed

    def test_retry_after_result(self, engine):
        captured = engine.capture("ladybug")
        battle = engine.start_stage_battle(1, 1, captured.id)
        while not battle.is_over:
            if battle.state.turn_owner == TurnOwner.OPPONENT:
                engine.advance_turn()
            else:
                engine.attack()

        engine.retry_battle(captured.id)

        assert battle.phase == BattlePhase.BATTLE
        assert not battle.is_over

    def test_actions_without_battle(self, engine):
        with pytest.raises(BattleStateError):
            engine.attack()

        engine.exit_battle()
        assert engine.battle is None

    def test_save_file(self, tmp_path):
        path = tmp_path / "save.json"
        game = GameEngine.with_save_file(path)
        game.load_content()
        game.capture("ladybug")

        reloaded = GameEngine.with_save_file(path)

        assert len(reloaded.get_collection()) == 1
