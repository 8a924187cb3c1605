"""
Core game engine that ties content, progression and battles together.
"""

import logging
import random
from datetime import date
from pathlib import Path
from typing import Callable

from .battle import BattleSession, BattleSetup
from .content import ContentDatabase
from .errors import BattleStateError
from .models import (
    BattleOutcome, CapturedInsect, Profile, SpecialEvent, Stage, World
)
from .progression import ProgressionService
from .store import InMemoryStore, JsonFileStore, KeyValueStore
from .yaml_parser import load_content


logger = logging.getLogger(__name__)


class GameEngine:
    """Main game engine class."""

    def __init__(self, store: KeyValueStore | None = None,
                 rng: random.Random | None = None):
        self.store = store or InMemoryStore()
        self.rng = rng
        self.content: ContentDatabase | None = None
        self.progression: ProgressionService | None = None
        self.battle: BattleSession | None = None

        self._message_callback: Callable[[list[str]], None] | None = None

    @classmethod
    def with_save_file(cls, save_path: str | Path, rng: random.Random | None = None) -> "GameEngine":
        """Engine whose progression is kept in a JSON save file."""
        return cls(store=JsonFileStore(save_path), rng=rng)

    def set_message_callback(self, callback: Callable[[list[str]], None]) -> None:
        """Set callback for displaying messages."""
        self._message_callback = callback

    def _emit_messages(self, messages: list[str]) -> None:
        """Emit messages through callback."""
        if self._message_callback and messages:
            self._message_callback(messages)

    def load_content(self, content_path: str | Path | None = None) -> ContentDatabase:
        """Load game content, using the bundled content when no path is given."""
        self.content = load_content(content_path)
        self.progression = ProgressionService(self.store, self.content)
        return self.content

    def _require_content(self) -> None:
        if self.content is None:
            self.load_content()

    # Queries

    def get_profile(self) -> Profile:
        self._require_content()
        return self.progression.get_profile()

    def get_collection(self) -> list[CapturedInsect]:
        self._require_content()
        return self.progression.get_collection()

    def get_unlocked_stages(self) -> list[tuple[World, Stage]]:
        """Every stage the player may currently enter, in map order."""
        self._require_content()
        unlocked = []
        for world_id in sorted(self.content.worlds):
            world = self.content.worlds[world_id]
            for stage in world.stages:
                if self.progression.is_stage_unlocked(world_id, stage.id):
                    unlocked.append((world, stage))
        return unlocked

    def get_active_events(self, today: date | None = None) -> list[SpecialEvent]:
        self._require_content()
        return self.content.active_events(today or date.today())

    def capture(self, insect_id: str, location: str = "") -> CapturedInsect:
        """Add an insect to the player's collection."""
        self._require_content()
        captured = self.progression.add_to_collection(insect_id, location)
        self._emit_messages([f"Captured {captured.name}!"])
        return captured

    # Battles

    def start_stage_battle(self, world_id: int, stage_id: int, captured_id: str) -> BattleSession:
        """
        Start a stage battle and run it up to the first turn.

        Raises:
            BattleStateError: The stage is still locked
        """
        self._require_content()
        if not self.progression.is_stage_unlocked(world_id, stage_id):
            raise BattleStateError(f"Stage {stage_id} of world {world_id} is locked")
        setup = BattleSetup.for_stage(self.content, world_id, stage_id)
        return self._start_battle(setup, captured_id)

    def start_event_battle(self, event_id: int, challenge_id: int, captured_id: str) -> BattleSession:
        """Start an event challenge battle and run it up to the first turn."""
        self._require_content()
        setup = BattleSetup.for_event(self.content, event_id, challenge_id)
        return self._start_battle(setup, captured_id)

    def _start_battle(self, setup: BattleSetup, captured_id: str) -> BattleSession:
        if self.battle and not self.battle.closed:
            self.battle.exit()

        self.battle = BattleSession(setup, self.content, self.progression, rng=self.rng)
        self.battle.set_battle_end_callback(self._on_battle_end)
        self._emit_messages(self.battle.start(captured_id))
        return self.battle

    def attack(self, skill_id: str | None = None) -> list[str]:
        """Player action in the current battle."""
        messages = self._current_battle().player_attack(skill_id)
        self._emit_messages(messages)
        return messages

    def advance_turn(self) -> list[str]:
        """Let the opponent act if it is their turn."""
        messages = self._current_battle().advance_turn()
        self._emit_messages(messages)
        return messages

    def retry_battle(self, captured_id: str) -> BattleSession:
        """Fight the same stage or challenge again, possibly with another insect."""
        battle = self._current_battle()
        battle.retry()
        self._emit_messages(battle.start(captured_id))
        return battle

    def exit_battle(self) -> None:
        if self.battle:
            self.battle.exit()
        self.battle = None

    def _current_battle(self) -> BattleSession:
        if self.battle is None:
            raise BattleStateError("No battle in progress")
        return self.battle

    def _on_battle_end(self, outcome: BattleOutcome) -> None:
        """Handle battle end."""
        profile = self.progression.get_profile()
        result = "won" if outcome == BattleOutcome.PLAYER_WIN else "lost"
        logger.info("Battle %s; record %d-%d", result, profile.battles_won, profile.battles_lost)
