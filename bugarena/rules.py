"""
Battle rule sets.
Event challenges list their special rules as text; the ones that change battle
math are parsed into a BattleRules value once, when the battle is set up.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable

from .battle_math import DEFAULT_ENERGY_REGEN
from .models import MAX_ENERGY


logger = logging.getLogger(__name__)

DAMAGE_BOOST_PATTERN = re.compile(r"enemies deal (\d+)% more damage", re.IGNORECASE)
ENERGY_REGEN_PATTERN = re.compile(r"energy regenerates (\d+) per turn", re.IGNORECASE)


@dataclass(frozen=True)
class BattleRules:
    """Numeric rules a battle session runs with."""
    extra_boost: float = 1.0
    regen_amount: int = DEFAULT_ENERGY_REGEN
    max_energy: int = MAX_ENERGY

    @classmethod
    def from_special_rules(cls, special_rules: Iterable[str]) -> "BattleRules":
        """Build rules from event rule strings; unrecognized rules are ignored."""
        extra_boost = 1.0
        regen_amount = DEFAULT_ENERGY_REGEN

        for rule in special_rules:
            boost_match = DAMAGE_BOOST_PATTERN.search(rule)
            if boost_match:
                extra_boost = 1 + int(boost_match.group(1)) / 100
                continue

            regen_match = ENERGY_REGEN_PATTERN.search(rule)
            if regen_match:
                regen_amount = int(regen_match.group(1))
                continue

            logger.debug("Rule has no battle effect: %s", rule)

        return cls(extra_boost=extra_boost, regen_amount=regen_amount)
