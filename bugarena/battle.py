"""
Battle session controller.
One state machine drives both stage and event battles; the differences
between them live in the BattleSetup value the session is created with.
"""

import logging
import math
import random
from dataclasses import dataclass, field
from typing import Callable

from .battle_math import (
    InitiativeRoll, check_battle_end, regenerate_energy,
    resolve_opponent_attack, resolve_player_attack, roll_initiative
)
from .content import ContentDatabase
from .errors import BattleStateError, ContentReferenceError
from .matchmaking import build_event_team, build_stage_team, pick_opponent_name
from .models import (
    BattleKind, BattleOutcome, BattlePhase, BattleRecord, CapturedInsect,
    Opponent, Rewards, Skill, TurnOwner, MAX_ENERGY
)
from .progression import ProgressionService
from .rules import BattleRules
from .state_machine import StateMachine


logger = logging.getLogger(__name__)

TeamBuilder = Callable[[random.Random | None], list[Opponent]]


@dataclass
class BattleSetup:
    """Everything that differs between one kind of battle and another."""
    kind: BattleKind
    title: str
    build_team: TeamBuilder
    location: tuple[int, int]
    rules: BattleRules = field(default_factory=BattleRules)
    rewards: Rewards = field(default_factory=Rewards)
    difficulty: int = 1
    opponent_level: int = 1
    opponent_label: str | None = None

    @classmethod
    def for_stage(cls, content: ContentDatabase, world_id: int, stage_id: int) -> "BattleSetup":
        """Setup for a world-map stage."""
        stage = content.get_stage_config(world_id, stage_id)
        return cls(
            kind=BattleKind.STAGE,
            title=stage.name,
            build_team=lambda rng: build_stage_team(stage, content, rng),
            location=(world_id, stage_id),
            rewards=stage.rewards,
            difficulty=stage.difficulty,
            opponent_level=stage.opponent_level
        )

    @classmethod
    def for_event(cls, content: ContentDatabase, event_id: int, challenge_id: int) -> "BattleSetup":
        """
        Setup for an event challenge.

        Raises:
            ContentReferenceError: The challenge has no enemy team to fight
        """
        challenge = content.get_challenge(event_id, challenge_id)
        if not challenge.enemy_team:
            raise ContentReferenceError(
                f"Challenge '{challenge.name}' has no enemy team and cannot be battled"
            )
        return cls(
            kind=BattleKind.EVENT,
            title=challenge.name,
            build_team=lambda rng: build_event_team(content, event_id, challenge_id),
            location=(event_id, challenge_id),
            rules=BattleRules.from_special_rules(challenge.special_rules),
            rewards=challenge.rewards,
            difficulty=challenge.difficulty,
            opponent_label="Enemy"
        )

    def coin_reward(self) -> int:
        if self.kind != BattleKind.STAGE:
            return 0
        return math.floor(50 + self.difficulty * 10 + self.opponent_level * 5)

    def experience_reward(self) -> int:
        if self.kind != BattleKind.STAGE:
            return 0
        return self.opponent_level * 10


@dataclass
class BattleState:
    """Mutable state of one battle."""
    player_hp: int = 0
    player_max_hp: int = 0
    player_energy: int = MAX_ENERGY
    opponent_hp: int = 0
    opponent_max_hp: int = 0
    opponent_energy: int = MAX_ENERGY
    current_opponent_index: int = 0
    turn_owner: TurnOwner = TurnOwner.PLAYER
    opponent_name: str = ""
    initiative: InitiativeRoll | None = None
    winner: TurnOwner | None = None
    coins_earned: int = 0
    xp_earned: int = 0
    log: list[str] = field(default_factory=list)


class BattleSession:
    """Runs one battle from combatant selection to the result screen."""

    def __init__(self, setup: BattleSetup, content: ContentDatabase,
                 progression: ProgressionService,
                 rng: random.Random | None = None):
        self.setup = setup
        self.content = content
        self.progression = progression
        self.rng = rng
        self.state_machine = StateMachine()
        self.state = BattleState()
        self.player: CapturedInsect | None = None
        self.opponents: list[Opponent] = []
        self.closed = False
        self._on_battle_end: Callable[[BattleOutcome], None] | None = None

    def set_battle_end_callback(self, callback: Callable[[BattleOutcome], None]) -> None:
        """Set callback for when the battle reaches its result."""
        self._on_battle_end = callback

    @property
    def phase(self) -> BattlePhase:
        return self.state_machine.phase

    @property
    def current_opponent(self) -> Opponent | None:
        if self.state.current_opponent_index < len(self.opponents):
            return self.opponents[self.state.current_opponent_index]
        return None

    @property
    def is_over(self) -> bool:
        return self.phase == BattlePhase.RESULT

    @property
    def player_won(self) -> bool:
        return self.state.winner == TurnOwner.PLAYER

    def _require(self, *phases: BattlePhase) -> None:
        if self.closed:
            raise BattleStateError("Battle session is closed")
        if not self.state_machine.is_in(*phases):
            expected = ", ".join(phase.value for phase in phases)
            raise BattleStateError(f"Battle is in phase '{self.phase.value}', expected {expected}")

    def _transition(self, new_phase: BattlePhase) -> None:
        if not self.state_machine.transition(new_phase):
            raise BattleStateError(f"Cannot move from '{self.phase.value}' to '{new_phase.value}'")

    def _log(self, messages: list[str]) -> list[str]:
        self.state.log.extend(messages)
        return messages

    # Setup phases

    def select_combatant(self, captured_id: str) -> list[str]:
        """Pick the roster insect to fight with and build the opponent team."""
        self._require(BattlePhase.SELECTION)

        self.player = self.progression.get_captured(captured_id)
        self.opponents = self.setup.build_team(self.rng)
        if not self.opponents:
            raise ContentReferenceError(f"'{self.setup.title}' produced an empty opponent team")
        self.state.opponent_name = self.setup.opponent_label or pick_opponent_name(
            self.content.config, self.rng
        )

        self._transition(BattlePhase.MATCHING)
        logger.debug(
            "%s selected %s against %d opponent(s)",
            self.setup.title, self.player.name, len(self.opponents)
        )
        return []

    def begin(self) -> list[str]:
        """Initialize HP and energy for both sides."""
        self._require(BattlePhase.MATCHING)
        self._transition(BattlePhase.INITIATIVE)

        player_stats = self.progression.get_level_scaled_stats(self.player)
        opponent = self.opponents[0]
        self.state.player_max_hp = player_stats.health
        self.state.player_hp = player_stats.health
        self.state.opponent_max_hp = opponent.stats.health
        self.state.opponent_hp = opponent.stats.health
        self.state.player_energy = self.setup.rules.max_energy
        self.state.opponent_energy = self.setup.rules.max_energy
        self.state.current_opponent_index = 0

        if self.setup.kind == BattleKind.EVENT:
            message = f"{self.setup.title} - START!"
        else:
            message = f"Battle started! {self.player.name} vs {self.state.opponent_name}'s team!"
        return self._log([message])

    def roll_initiative(self) -> list[str]:
        """Roll initiative once and hand the first turn to the winner."""
        self._require(BattlePhase.INITIATIVE)

        # Stage and event battles both roll with the level-scaled speed.
        player_speed = self.progression.get_level_scaled_stats(self.player).speed
        roll = roll_initiative(player_speed, self.opponents[0].stats.speed, rng=self.rng)
        self.state.initiative = roll
        self.state.turn_owner = TurnOwner.PLAYER if roll.player_goes_first else TurnOwner.OPPONENT

        self._transition(BattlePhase.BATTLE)

        name = self.state.opponent_name
        return self._log([
            f"Initiative Roll: You rolled {roll.player_roll}, {name} rolled {roll.opponent_roll}",
            "You go first!" if roll.player_goes_first else f"{name} goes first!"
        ])

    def start(self, captured_id: str) -> list[str]:
        """Run selection, matching and initiative in one go."""
        messages = self.select_combatant(captured_id)
        messages.extend(self.begin())
        messages.extend(self.roll_initiative())
        return messages

    # Battle phase

    def available_skills(self) -> list[Skill]:
        """Skills equipped on the player's insect, normal skills first."""
        if self.player is None:
            return []
        return [self.content.get_skill(skill_id) for skill_id in self.player.equipped_skills.skill_ids()]

    def player_attack(self, skill_id: str | None = None) -> list[str]:
        """
        Attack the active opponent with a basic attack or an equipped skill.

        An attack the player cannot pay for changes no HP; both sides still
        regenerate and the turn stays with the player.

        Raises:
            BattleStateError: Not in battle, not the player's turn, or the skill is not equipped
        """
        self._require(BattlePhase.BATTLE)
        if self.state.turn_owner != TurnOwner.PLAYER:
            raise BattleStateError("It is not the player's turn")

        skill = None
        if skill_id is not None:
            if skill_id not in self.player.equipped_skills.skill_ids():
                raise BattleStateError(f"Skill '{skill_id}' is not equipped on {self.player.name}")
            skill = self.content.get_skill(skill_id)

        opponent = self.current_opponent
        result = resolve_player_attack(
            self.player, opponent, self.state.opponent_hp, self.state.player_energy,
            skill=skill, extra_boost=self.setup.rules.extra_boost, rng=self.rng
        )
        messages = [result.message]

        if not result.performed:
            self._regenerate()
            return self._log(messages)

        self.state.player_energy = max(0, self.state.player_energy - result.energy_used)
        self.state.opponent_hp = result.new_hp
        logger.debug("Player dealt %d damage, opponent HP %d", result.damage, result.new_hp)

        outcome = check_battle_end(self.state.player_hp, self.state.opponent_hp)
        if outcome == BattleOutcome.PLAYER_WIN:
            if self.state.current_opponent_index < len(self.opponents) - 1:
                messages.append(self._swap_in_next_opponent(opponent))
                return self._log(messages)
            self._log(messages)
            return messages + self._finish(outcome)

        self._regenerate()
        self.state.turn_owner = TurnOwner.OPPONENT
        return self._log(messages)

    def advance_turn(self) -> list[str]:
        """Run the opponent's turn if it is due; otherwise do nothing."""
        if self.closed or self.phase != BattlePhase.BATTLE:
            return []
        if self.state.turn_owner != TurnOwner.OPPONENT:
            return []

        opponent = self.current_opponent
        result = resolve_opponent_attack(
            opponent, self.player, self.state.player_hp, self.state.opponent_energy,
            extra_boost=self.setup.rules.extra_boost,
            special_ability=opponent.special_ability,
            rng=self.rng
        )
        messages = [result.message]

        if result.performed:
            self.state.opponent_energy = max(0, self.state.opponent_energy - result.energy_used)
            self.state.player_hp = result.new_hp
            logger.debug("Opponent dealt %d damage, player HP %d", result.damage, result.new_hp)

            outcome = check_battle_end(self.state.player_hp, self.state.opponent_hp)
            if outcome == BattleOutcome.OPPONENT_WIN:
                self._log(messages)
                return messages + self._finish(outcome)

        self._regenerate()
        self.state.turn_owner = TurnOwner.PLAYER
        return self._log(messages)

    def _regenerate(self) -> None:
        rules = self.setup.rules
        self.state.player_energy = regenerate_energy(
            self.state.player_energy, rules.max_energy, rules.regen_amount
        )
        self.state.opponent_energy = regenerate_energy(
            self.state.opponent_energy, rules.max_energy, rules.regen_amount
        )

    def _swap_in_next_opponent(self, defeated: Opponent) -> str:
        """Bring in the next team member at full HP and energy. The player keeps the turn."""
        self.state.current_opponent_index += 1
        next_opponent = self.current_opponent
        self.state.opponent_max_hp = next_opponent.stats.health
        self.state.opponent_hp = next_opponent.stats.health
        self.state.opponent_energy = self.setup.rules.max_energy
        logger.debug(
            "Opponent %d/%d: %s", self.state.current_opponent_index + 1,
            len(self.opponents), next_opponent.name
        )
        return f"{defeated.name} defeated! Next opponent: {next_opponent.name}!"

    # Result

    def _finish(self, outcome: BattleOutcome) -> list[str]:
        self._transition(BattlePhase.RESULT)

        if outcome == BattleOutcome.PLAYER_WIN:
            self.state.winner = TurnOwner.PLAYER
            messages = self._apply_victory()
        else:
            self.state.winner = TurnOwner.OPPONENT
            messages = [f"{self.player.name} was defeated!"]
            self.progression.record_battle_outcome(BattleRecord(
                won=False,
                opponent_name=self._history_name(),
                combatant_used=self.player.name
            ))

        logger.info(
            "%s battle '%s' ended: %s", self.setup.kind.value, self.setup.title, outcome.value
        )
        self._log(messages)

        if self._on_battle_end:
            self._on_battle_end(outcome)

        return messages

    def _history_name(self) -> str:
        if self.setup.kind == BattleKind.EVENT:
            return self.setup.title
        return self.state.opponent_name

    def _apply_victory(self) -> list[str]:
        """Grant rewards and persist completion. Returns the victory log lines."""
        setup = self.setup
        messages = []

        if setup.kind == BattleKind.STAGE:
            self.progression.mark_stage_complete(*setup.location)
        else:
            self.progression.mark_challenge_complete(*setup.location)

        coins = setup.coin_reward()
        if coins:
            self.progression.grant_currency(coins)
            self.state.coins_earned = coins
            messages.append(f"Victory! Earned {coins} coins!")
        else:
            messages.append(f"Victory! {setup.title} cleared!")

        xp = setup.experience_reward()
        if xp:
            result = self.progression.grant_experience(self.player.id, xp)
            self.state.xp_earned = xp
            messages.append(f"{self.player.name} gained {xp} EXP!")
            if result.leveled_up:
                messages.append(f"🎉 {self.player.name} leveled up to Level {result.new_level}!")

        if setup.rewards.rolls:
            self.progression.grant_rolls(setup.rewards.rolls)
            messages.append(f"Received {setup.rewards.rolls} skill roll(s)!")
        for potion_type, amount in setup.rewards.potions.items():
            self.progression.grant_potion(potion_type, amount)
            messages.append(f"Received {amount} {potion_type} potion(s)!")

        self.progression.record_battle_outcome(BattleRecord(
            won=True,
            opponent_name=self._history_name(),
            combatant_used=self.player.name,
            xp_earned=xp
        ))
        return messages

    def retry(self) -> None:
        """Go back to combatant selection with a fresh state."""
        self._require(BattlePhase.RESULT)
        self._transition(BattlePhase.SELECTION)
        self.state = BattleState()
        self.player = None
        self.opponents = []

    def exit(self) -> None:
        """Discard the session. Rewards already granted stay granted."""
        self.closed = True
        logger.debug("Left battle '%s' in phase %s", self.setup.title, self.phase.value)
