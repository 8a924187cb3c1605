"""
Shared fixtures for testing the battle engine.
"""

import math

import pytest
from bugarena.content import ContentDatabase
from bugarena.models import (
    CapturedInsect, EquippedSkills, EventChallenge, GameConfig, Insect,
    Opponent, PotionBundle, Rarity, Rewards, Skill, SkillType, SpecialAbility,
    SpecialEvent, Stage, StageBoss, Stats, World, WorldUnlock
)
from bugarena.progression import ProgressionService
from bugarena.store import InMemoryStore
from bugarena.yaml_parser import load_content


class ScriptedRandom:
    """Random source that replays scripted draws.

    `choice` consumes one draw the same way the game picks list entries.
    Once the script runs out, `default` is returned; without a default an
    exhausted script fails the test.
    """

    def __init__(self, values: list[float] | None = None, default: float | None = None):
        self.values = list(values or [])
        self.default = default
        self.draws = 0

    def random(self) -> float:
        self.draws += 1
        if self.values:
            return self.values.pop(0)
        if self.default is None:
            raise AssertionError("Scripted random source exhausted")
        return self.default

    def choice(self, seq):
        return seq[math.floor(self.random() * len(seq))]


@pytest.fixture
def skills() -> dict[str, Skill]:
    """Create a small skill set."""
    return {
        "quick-strike": Skill(
            id="quick-strike", name="Quick Strike", energy_cost=1, damage_multiplier=0.5
        ),
        "heavy-slam": Skill(
            id="heavy-slam", name="Heavy Slam", energy_cost=3, damage_multiplier=1.0
        ),
        "charged-beam": Skill(
            id="charged-beam", name="Charged Beam", energy_cost=15, damage_multiplier=2.0
        ),
        "mega-impact": Skill(
            id="mega-impact", name="Mega Impact", type=SkillType.ULTIMATE,
            energy_cost=5, damage_multiplier=2.0
        ),
    }


@pytest.fixture
def insects() -> dict[str, Insect]:
    """Create test insects."""
    return {
        "ladybug": Insect(
            id="ladybug", name="Ladybug", rarity=Rarity.COMMON,
            stats=Stats(health=70, attack=45, defense=60, speed=50),
            base_skills=EquippedSkills(normal=["quick-strike"])
        ),
        "aphid": Insect(
            id="aphid", name="Aphid", rarity=Rarity.COMMON,
            stats=Stats(health=40, attack=25, defense=30, speed=20)
        ),
        "mantis": Insect(
            id="mantis", name="Praying Mantis", rarity=Rarity.RARE,
            stats=Stats(health=80, attack=85, defense=60, speed=60),
            base_skills=EquippedSkills(
                normal=["heavy-slam", "charged-beam"], ultimate="mega-impact"
            )
        ),
        "boss_beetle": Insect(
            id="boss_beetle", name="Hercules Beetle", rarity=Rarity.EPIC,
            stats=Stats(health=150, attack=90, defense=85, speed=70)
        ),
    }


@pytest.fixture
def worlds() -> dict[int, World]:
    """Create two worlds; the second needs rank 4 and a cleared first world."""
    return {
        1: World(
            id=1, name="Garden Meadows",
            stages=[
                Stage(id=1, name="First Steps", difficulty=1, required_rank=1,
                      rewards=Rewards(rolls=1), opponent_level=1, opponent_count=1),
                Stage(id=2, name="Garden Path", difficulty=2, required_rank=1,
                      rewards=Rewards(rolls=2, potions=PotionBundle(energy=1)),
                      opponent_level=2, opponent_count=2),
                Stage(id=3, name="Guardian", difficulty=5, required_rank=3,
                      rewards=Rewards(rolls=5), opponent_level=6, opponent_count=2,
                      boss=StageBoss(name="Garden Guardian", insect_id="boss_beetle",
                                     level_boost=2, stat_multiplier=1.5)),
            ]
        ),
        2: World(
            id=2, name="Forest Depths",
            unlock=WorldUnlock(rank=4, previous_world_completed=1),
            stages=[
                Stage(id=11, name="Forest Entrance", difficulty=5, required_rank=4,
                      rewards=Rewards(rolls=3), opponent_level=11, opponent_count=2),
            ]
        ),
    }


@pytest.fixture
def events() -> dict[int, SpecialEvent]:
    """Create an event with a battle challenge and a capture challenge."""
    return {
        1: SpecialEvent(
            id=1, name="Cursed Insect Domain",
            challenges=[
                EventChallenge(
                    id=1, name="Domain Trial", difficulty=15,
                    special_rules=[
                        "Enemies deal 50% more damage",
                        "Energy regenerates 20 per turn",
                    ],
                    enemy_team=[
                        Opponent(
                            name="Cursed Mantis", rarity=Rarity.EPIC,
                            stats=Stats(health=60, attack=80, defense=40, speed=90),
                            special_ability=SpecialAbility.parse("Shadow Strike - Ignores 50% defense")
                        ),
                    ],
                    rewards=Rewards(rolls=10, potions=PotionBundle(luck=2))
                ),
                EventChallenge(id=2, name="Capture 10 Love Bugs", enemy_team=[]),
            ]
        ),
    }


@pytest.fixture
def content(insects, skills, worlds, events) -> ContentDatabase:
    """Create a content database from the test records."""
    return ContentDatabase(
        insects=insects,
        skills=skills,
        worlds=worlds,
        events=events,
        config=GameConfig(opponent_names=["Bug Master Alex", "Insect Hunter Maya"])
    )


@pytest.fixture(scope="session")
def bundled_content() -> ContentDatabase:
    """Load the content shipped with the package."""
    return load_content()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def progression(store, content) -> ProgressionService:
    """Create a progression service over an empty store."""
    return ProgressionService(store, content)


@pytest.fixture
def mantis(progression) -> CapturedInsect:
    """Capture a level-1 Praying Mantis with its base skills."""
    return progression.add_to_collection("mantis", location="Test Garden")
