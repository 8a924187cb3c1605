"""
Data models for the battle engine.
Uses dataclasses for content records, roster entries and battle participants.
"""

import math
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional


MAX_LEVEL = 100
MAX_ENERGY = 100
MAX_NORMAL_SKILLS = 3
LEVEL_STAT_STEP = 0.02
POTION_TYPES = ("luck", "xp", "energy")


class Rarity(Enum):
    """Rarity tiers shared by insects and opponents."""
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"
    MYTHIC = "mythic"
    EXOTIC = "exotic"


class SkillType(Enum):
    """Equip slot a skill occupies."""
    NORMAL = "normal"
    ULTIMATE = "ultimate"


class SpecialAbilityKind(Enum):
    """Opponent abilities that change the damage of an opponent attack."""
    NONE = "none"
    MALEVOLENT_SHRINE = "malevolent_shrine"
    VENOM_STRIKE = "venom_strike"
    SHADOW_STRIKE = "shadow_strike"


# Checked in order; the first name found in an ability description wins.
SPECIAL_ABILITY_NAMES: list[tuple[str, SpecialAbilityKind]] = [
    ("Malevolent Shrine", SpecialAbilityKind.MALEVOLENT_SHRINE),
    ("Venom Strike", SpecialAbilityKind.VENOM_STRIKE),
    ("Shadow Strike", SpecialAbilityKind.SHADOW_STRIKE),
]


class BattlePhase(Enum):
    """Phases of a battle session."""
    SELECTION = "selection"
    MATCHING = "matching"
    INITIATIVE = "initiative"
    BATTLE = "battle"
    RESULT = "result"


class TurnOwner(Enum):
    """Side allowed to act next."""
    PLAYER = "player"
    OPPONENT = "opponent"


class BattleOutcome(Enum):
    """Terminal-state check result."""
    PLAYER_WIN = "player_win"
    OPPONENT_WIN = "opponent_win"
    CONTINUE = "continue"


class BattleKind(Enum):
    """Where a battle was started from."""
    STAGE = "stage"
    EVENT = "event"


@dataclass(frozen=True)
class Stats:
    """The four combat stats."""
    health: int = 100
    attack: int = 50
    defense: int = 50
    speed: int = 50

    def scaled_by_level(self, level: int) -> "Stats":
        """Apply the per-level multiplier uniformly, flooring each stat."""
        multiplier = 1 + (level - 1) * LEVEL_STAT_STEP
        return Stats(
            health=math.floor(self.health * multiplier),
            attack=math.floor(self.attack * multiplier),
            defense=math.floor(self.defense * multiplier),
            speed=math.floor(self.speed * multiplier),
        )


@dataclass(frozen=True)
class SpecialAbility:
    """An opponent ability, resolved to a kind once when content is loaded."""
    kind: SpecialAbilityKind = SpecialAbilityKind.NONE
    description: str = ""

    @classmethod
    def parse(cls, description: str | None) -> "SpecialAbility":
        """Resolve an ability description to its kind."""
        if not description:
            return cls()
        for name, kind in SPECIAL_ABILITY_NAMES:
            if name in description:
                return cls(kind=kind, description=description)
        return cls(description=description)

    @property
    def name(self) -> str:
        """Short name shown in battle messages."""
        return self.description.split(" - ")[0].strip()


@dataclass(frozen=True)
class SkillEffects:
    """Secondary effects listed on a skill.

    These are carried for display only; damage resolution does not read them.
    """
    healing: int = 0
    shield: int = 0
    lifesteal: int = 0
    burn: int = 0
    stun: bool = False
    energy_restore: int = 0

    def describe(self) -> list[str]:
        """Human-readable list of the non-empty effects."""
        parts = []
        if self.healing:
            parts.append(f"heal {self.healing}")
        if self.shield:
            parts.append(f"shield {self.shield}")
        if self.lifesteal:
            parts.append(f"lifesteal {self.lifesteal}%")
        if self.burn:
            parts.append(f"burn {self.burn}")
        if self.stun:
            parts.append("stun")
        if self.energy_restore:
            parts.append(f"energy +{self.energy_restore}")
        return parts


@dataclass(frozen=True)
class Skill:
    """A skill definition."""
    id: str
    name: str
    type: SkillType = SkillType.NORMAL
    rarity: str = "common"
    description: str = ""
    energy_cost: int = 0
    damage_multiplier: float = 1.0
    effects: SkillEffects = field(default_factory=SkillEffects)


@dataclass
class EquippedSkills:
    """Skill loadout: up to three normal skills and one ultimate."""
    normal: list[str] = field(default_factory=list)
    ultimate: Optional[str] = None

    def skill_ids(self) -> list[str]:
        """All equipped skill IDs, normal skills first."""
        ids = list(self.normal)
        if self.ultimate:
            ids.append(self.ultimate)
        return ids


@dataclass
class Insect:
    """An insect species from the encyclopedia."""
    id: str
    name: str
    rarity: Rarity = Rarity.COMMON
    stats: Stats = field(default_factory=Stats)
    scientific_name: str = ""
    type: str = "good"
    description: str = ""
    emoji: str = ""
    base_skills: EquippedSkills = field(default_factory=EquippedSkills)


@dataclass
class CapturedInsect:
    """A player-owned insect in the roster."""
    id: str
    insect: Insect
    captured_at: float = 0.0
    location: str = ""
    level: int = 1
    experience: int = 0
    equipped_skills: EquippedSkills = field(default_factory=EquippedSkills)

    @property
    def name(self) -> str:
        return self.insect.name

    def scaled_stats(self) -> Stats:
        """Level-scaled stats used in battle."""
        return self.insect.stats.scaled_by_level(self.level)


@dataclass
class Opponent:
    """An opponent entry in a battle team."""
    name: str
    stats: Stats
    rarity: Rarity = Rarity.COMMON
    level: int = 1
    emoji: str = ""
    special_ability: SpecialAbility = field(default_factory=SpecialAbility)
    is_boss: bool = False


@dataclass(frozen=True)
class PotionBundle:
    """Potion counts granted as a reward."""
    luck: int = 0
    xp: int = 0
    energy: int = 0

    def items(self) -> list[tuple[str, int]]:
        """Non-zero (potion type, amount) pairs."""
        return [
            (potion_type, getattr(self, potion_type))
            for potion_type in POTION_TYPES
            if getattr(self, potion_type)
        ]


@dataclass(frozen=True)
class Rewards:
    """Fixed rewards attached to a stage or event challenge."""
    rolls: int = 0
    potions: PotionBundle = field(default_factory=PotionBundle)


@dataclass(frozen=True)
class StageBoss:
    """Boss that takes the last slot of a stage's opponent team."""
    name: str
    insect_id: str
    level_boost: int = 0
    stat_multiplier: float = 1.0
    passive_boost: tuple[str, ...] = ()


@dataclass
class Stage:
    """A stage on the world map."""
    id: int
    name: str
    difficulty: int = 1
    required_rank: int = 1
    rewards: Rewards = field(default_factory=Rewards)
    opponent_level: int = 1
    opponent_count: int = 1
    boss: Optional[StageBoss] = None


@dataclass(frozen=True)
class WorldUnlock:
    """Requirements for entering a world."""
    rank: Optional[int] = None
    previous_world_completed: Optional[int] = None


@dataclass
class World:
    """A world of the progression map."""
    id: int
    name: str
    emoji: str = ""
    description: str = ""
    stages: list[Stage] = field(default_factory=list)
    unlock: WorldUnlock = field(default_factory=WorldUnlock)


@dataclass
class EventChallenge:
    """A challenge inside a special event."""
    id: int
    name: str
    description: str = ""
    difficulty: int = 1
    requirement: str = ""
    enemy_team: list[Opponent] = field(default_factory=list)
    special_rules: list[str] = field(default_factory=list)
    rewards: Rewards = field(default_factory=Rewards)
    exclusive_reward: str = ""


@dataclass
class SpecialEvent:
    """A time-limited event holding challenges."""
    id: int
    name: str
    description: str = ""
    emoji: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    challenges: list[EventChallenge] = field(default_factory=list)
    special_mechanics: list[str] = field(default_factory=list)

    def is_active(self, today: date) -> bool:
        """Check if the event runs on the given day."""
        if self.start_date and today < self.start_date:
            return False
        if self.end_date and today > self.end_date:
            return False
        return True


@dataclass
class BattleRecord:
    """An entry of the battle history."""
    won: bool
    opponent_name: str
    combatant_used: str
    xp_earned: int = 0
    timestamp: float = 0.0


@dataclass(frozen=True)
class ExperienceResult:
    """Outcome of granting experience to a roster insect."""
    leveled_up: bool
    new_level: Optional[int] = None
    overflow: int = 0


@dataclass
class Profile:
    """Player profile counters."""
    username: str = "BugHunter"
    avatar_emoji: str = "🐛"
    rank: int = 1
    total_captures: int = 0
    battles_won: int = 0
    battles_lost: int = 0
    coins: int = 0


@dataclass(frozen=True)
class RarityTier:
    """Opponent rarities used when the stage's opponent level exceeds `above_level`."""
    above_level: int
    rarities: tuple[Rarity, ...]


@dataclass(frozen=True)
class PresentationDelays:
    """Cosmetic pacing in seconds, used only by front ends."""
    matching: float = 2.0
    event_start: float = 1.5
    initiative: float = 0.5
    initiative_display: float = 3.0
    opponent_turn: float = 0.8
    action: float = 1.0
    turn_handover: float = 1.5


@dataclass
class GameConfig:
    """Tunables loaded from game.yaml."""
    opponent_names: list[str] = field(default_factory=lambda: ["Rival Trainer"])
    rarity_tiers: list[RarityTier] = field(default_factory=lambda: [
        RarityTier(30, (Rarity.LEGENDARY, Rarity.EPIC)),
        RarityTier(20, (Rarity.EPIC, Rarity.RARE)),
        RarityTier(10, (Rarity.RARE, Rarity.UNCOMMON)),
        RarityTier(0, (Rarity.UNCOMMON, Rarity.COMMON)),
    ])
    history_limit: int = 50
    max_level: int = MAX_LEVEL
    delays: PresentationDelays = field(default_factory=PresentationDelays)

    def rarities_for_level(self, opponent_level: int) -> tuple[Rarity, ...]:
        """Pick the rarity pool for an opponent level."""
        for tier in sorted(self.rarity_tiers, key=lambda t: t.above_level, reverse=True):
            if opponent_level > tier.above_level:
                return tier.rarities
        return self.rarity_tiers[-1].rarities if self.rarity_tiers else ()
