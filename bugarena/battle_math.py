"""
Battle math: damage, opponent AI energy spend, initiative and terminal checks.
Pure functions; the only side effect is drawing from the random source.
"""

import math
import random
from dataclasses import dataclass

from .models import (
    BattleOutcome, CapturedInsect, Opponent, Skill,
    SpecialAbility, SpecialAbilityKind, MAX_ENERGY
)


BASIC_ATTACK_ENERGY_COST = 15
SKILL_SPEED_BONUS = 5
BASIC_SPEED_BONUS = 3
DAMAGE_FLOOR = 5
DAMAGE_SPREAD = 5
DEFENSE_FACTOR = 0.3

OPPONENT_MIN_ENERGY_COST = 15
OPPONENT_MAX_ENERGY_COST = 50
OPPONENT_POWER_DIVISOR = 20

DEFAULT_ENERGY_REGEN = 10
INITIATIVE_DIE = 20
INITIATIVE_SPEED_DIVISOR = 10

MALEVOLENT_SHRINE_BONUS = 50
VENOM_STRIKE_BONUS = 20
SHADOW_STRIKE_MULTIPLIER = 1.5


@dataclass(frozen=True)
class AttackResult:
    """Result of resolving one attack.

    `energy_used == 0` marks a no-op: nothing was spent and HP is unchanged.
    """
    damage: int
    new_hp: int
    message: str
    energy_used: int

    @property
    def performed(self) -> bool:
        return self.energy_used > 0


@dataclass(frozen=True)
class InitiativeRoll:
    """Initiative for both sides.

    The rolls are floored for display, while `player_goes_first` compares the
    unfloored totals.
    """
    player_roll: int
    opponent_roll: int
    player_goes_first: bool
    player_total: float
    opponent_total: float


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up."""
    return math.floor(value + 0.5)


def random_source(rng: random.Random | None):
    """The injected random source, or the module-level generator."""
    return rng if rng is not None else random


def compute_skill_damage(attacker_atk: int, defender_def: int,
                         attacker_spd: int, defender_spd: int,
                         damage_multiplier: float, extra_boost: float = 1,
                         rng: random.Random | None = None) -> int:
    """Damage dealt by a skill."""
    speed_bonus = SKILL_SPEED_BONUS if attacker_spd > defender_spd else 0
    raw = (attacker_atk * damage_multiplier - defender_def * DEFENSE_FACTOR + speed_bonus) * extra_boost
    damage = max(DAMAGE_FLOOR, raw)
    return round_half_up(damage + random_source(rng).random() * DAMAGE_SPREAD)


def compute_basic_attack_damage(attacker_atk: int, defender_def: int,
                                attacker_spd: int, defender_spd: int,
                                rng: random.Random | None = None) -> int:
    """Damage dealt by a basic attack (multiplier 1.0, smaller speed bonus)."""
    speed_bonus = BASIC_SPEED_BONUS if attacker_spd > defender_spd else 0
    damage = max(DAMAGE_FLOOR, attacker_atk - defender_def * DEFENSE_FACTOR + speed_bonus)
    return round_half_up(damage + random_source(rng).random() * DAMAGE_SPREAD)


def resolve_player_attack(player: CapturedInsect, opponent: Opponent,
                          opponent_hp: int, player_energy: int,
                          skill: Skill | None = None, extra_boost: float = 1,
                          rng: random.Random | None = None) -> AttackResult:
    """
    Resolve the player's attack against the active opponent.

    Args:
        player: Attacking roster insect; its level-scaled attack and speed are used
        opponent: Defending opponent
        opponent_hp: Opponent HP before the attack
        player_energy: Energy available to the player
        skill: Skill to use, or None for a basic attack
        extra_boost: Damage multiplier from event rules (skills only)

    Returns:
        AttackResult; a zero-effect result when the player cannot pay the cost
    """
    energy_cost = skill.energy_cost if skill else BASIC_ATTACK_ENERGY_COST

    if player_energy < energy_cost:
        return AttackResult(
            damage=0,
            new_hp=opponent_hp,
            message=f"Not enough energy! Need {energy_cost} energy.",
            energy_used=0
        )

    stats = player.scaled_stats()

    if skill:
        damage = compute_skill_damage(
            stats.attack, opponent.stats.defense,
            stats.speed, opponent.stats.speed,
            skill.damage_multiplier, extra_boost, rng=rng
        )
        message = f"{player.name} used {skill.name}! {damage} damage!"
    else:
        damage = compute_basic_attack_damage(
            stats.attack, opponent.stats.defense,
            stats.speed, opponent.stats.speed, rng=rng
        )
        message = f"{player.name} used Basic Attack! {damage} damage!"

    return AttackResult(
        damage=damage,
        new_hp=max(0, opponent_hp - damage),
        message=message,
        energy_used=energy_cost
    )


def resolve_opponent_attack(opponent: Opponent, player: CapturedInsect,
                            player_hp: int, opponent_energy: int,
                            extra_boost: float = 1,
                            special_ability: SpecialAbility | None = None,
                            rng: random.Random | None = None) -> AttackResult:
    """
    Resolve the opponent AI's attack.

    The AI spends a random amount of energy between the minimum cost and
    min(available, 50); attack power scales with the amount spent. The player's
    base defense (not level-scaled) reduces the hit.
    """
    source = random_source(rng)

    if opponent_energy < OPPONENT_MIN_ENERGY_COST:
        return AttackResult(
            damage=0,
            new_hp=player_hp,
            message=f"{opponent.name} has no energy to attack!",
            energy_used=0
        )

    max_cost = min(opponent_energy, OPPONENT_MAX_ENERGY_COST)
    energy_cost = math.floor(
        source.random() * (max_cost - OPPONENT_MIN_ENERGY_COST + 1)
    ) + OPPONENT_MIN_ENERGY_COST

    power_multiplier = energy_cost / OPPONENT_POWER_DIVISOR
    base_damage = opponent.stats.attack * power_multiplier * extra_boost
    defense = player.insect.stats.defense
    damage = max(DAMAGE_FLOOR, base_damage - defense * DEFENSE_FACTOR)

    total_damage = round_half_up(damage + source.random() * DAMAGE_SPREAD)
    message = f"{opponent.name} attacks! {total_damage} damage! (Used {energy_cost} energy)"

    kind = special_ability.kind if special_ability else SpecialAbilityKind.NONE
    if kind == SpecialAbilityKind.MALEVOLENT_SHRINE:
        total_damage += MALEVOLENT_SHRINE_BONUS
        message = f"{opponent.name} uses Malevolent Shrine! {total_damage} total damage!"
    elif kind == SpecialAbilityKind.VENOM_STRIKE:
        total_damage += VENOM_STRIKE_BONUS
        message = f"{opponent.name} uses Venom Strike! {total_damage} damage with poison!"
    elif kind == SpecialAbilityKind.SHADOW_STRIKE:
        total_damage = round_half_up(total_damage * SHADOW_STRIKE_MULTIPLIER)
        message = f"{opponent.name} uses Shadow Strike! {total_damage} damage (ignores defense)!"

    return AttackResult(
        damage=total_damage,
        new_hp=max(0, player_hp - total_damage),
        message=message,
        energy_used=energy_cost
    )


def roll_initiative(player_speed: int, opponent_speed: int,
                    rng: random.Random | None = None) -> InitiativeRoll:
    """Roll a d20 plus speed/10 for each side. Ties go to the opponent."""
    source = random_source(rng)
    player_total = math.floor(source.random() * INITIATIVE_DIE) + 1 + player_speed / INITIATIVE_SPEED_DIVISOR
    opponent_total = math.floor(source.random() * INITIATIVE_DIE) + 1 + opponent_speed / INITIATIVE_SPEED_DIVISOR

    return InitiativeRoll(
        player_roll=math.floor(player_total),
        opponent_roll=math.floor(opponent_total),
        player_goes_first=player_total > opponent_total,
        player_total=player_total,
        opponent_total=opponent_total
    )


def regenerate_energy(current: int, maximum: int = MAX_ENERGY,
                      amount: int = DEFAULT_ENERGY_REGEN) -> int:
    """Regenerate energy up to the cap."""
    return min(maximum, current + amount)


def check_battle_end(player_hp: int, opponent_hp: int) -> BattleOutcome:
    """Check for a terminal state. Player defeat is checked first."""
    if player_hp <= 0:
        return BattleOutcome.OPPONENT_WIN
    if opponent_hp <= 0:
        return BattleOutcome.PLAYER_WIN
    return BattleOutcome.CONTINUE
