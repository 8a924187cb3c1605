"""
Opponent team synthesis for stage and event battles.
"""

import logging
import random

from .battle_math import random_source, round_half_up
from .content import ContentDatabase
from .errors import ContentReferenceError
from .models import GameConfig, Insect, Opponent, Stage, Stats


logger = logging.getLogger(__name__)

DIFFICULTY_BOOST_DIVISOR = 20


def difficulty_boost(difficulty: int) -> float:
    """Stat multiplier for a stage difficulty (1.0 to 2.0 across the map)."""
    return 1 + difficulty / DIFFICULTY_BOOST_DIVISOR


def boost_stats(stats: Stats, multiplier: float) -> Stats:
    """Multiply every stat, rounding halves up."""
    return Stats(
        health=round_half_up(stats.health * multiplier),
        attack=round_half_up(stats.attack * multiplier),
        defense=round_half_up(stats.defense * multiplier),
        speed=round_half_up(stats.speed * multiplier),
    )


def pick_opponent_name(config: GameConfig, rng: random.Random | None = None) -> str:
    """Pick a random trainer name."""
    return random_source(rng).choice(config.opponent_names)


def _opponent_from_insect(insect: Insect, stats: Stats, level: int,
                          name: str | None = None, is_boss: bool = False) -> Opponent:
    return Opponent(
        name=name or insect.name,
        stats=stats,
        rarity=insect.rarity,
        level=level,
        emoji=insect.emoji,
        is_boss=is_boss
    )


def build_stage_team(stage: Stage, content: ContentDatabase,
                     rng: random.Random | None = None) -> list[Opponent]:
    """
    Build the opponent team for a stage.

    Opponents are drawn uniformly from the rarity pool matching the stage's
    opponent level and boosted by its difficulty. A stage boss replaces the last
    slot, with its stat multiplier applied on top of the difficulty boost.

    Raises:
        ContentReferenceError: No insect exists in the rarity pool
    """
    source = random_source(rng)
    rarities = content.config.rarities_for_level(stage.opponent_level)
    eligible = content.insects_with_rarity(rarities)
    if not eligible:
        raise ContentReferenceError(
            f"No insects of rarity {[r.value for r in rarities]} for stage {stage.id}"
        )

    boost = difficulty_boost(stage.difficulty)
    team = []
    for _ in range(stage.opponent_count):
        insect = source.choice(eligible)
        team.append(_opponent_from_insect(
            insect, boost_stats(insect.stats, boost), stage.opponent_level
        ))

    if stage.boss:
        boss_insect = content.get_insect(stage.boss.insect_id)
        boss = _opponent_from_insect(
            boss_insect,
            boost_stats(boss_insect.stats, boost * stage.boss.stat_multiplier),
            stage.opponent_level + stage.boss.level_boost,
            name=stage.boss.name,
            is_boss=True
        )
        if team:
            team[-1] = boss
        else:
            team.append(boss)

    logger.debug(
        "Stage %d team: %s", stage.id, ", ".join(opponent.name for opponent in team)
    )
    return team


def build_event_team(content: ContentDatabase, event_id: int,
                     challenge_id: int) -> list[Opponent]:
    """
    Copy the fixed enemy team of an event challenge.

    Raises:
        ContentReferenceError: The challenge has no enemies to fight
    """
    team = content.get_event_enemy_team(event_id, challenge_id)
    if not team:
        raise ContentReferenceError(
            f"Challenge {challenge_id} of event {event_id} has no enemy team"
        )
    return team
