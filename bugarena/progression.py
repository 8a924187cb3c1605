"""
Player progression: roster, currencies, experience, completion flags,
battle history and unlock rules, persisted through a key-value store.
"""

import logging
import math
import time
import uuid
from dataclasses import asdict

from .content import ContentDatabase
from .errors import ContentReferenceError
from .models import (
    BattleRecord, CapturedInsect, EquippedSkills, ExperienceResult,
    PotionBundle, Profile, SkillType, Stats, MAX_NORMAL_SKILLS, POTION_TYPES
)
from .store import KeyValueStore


logger = logging.getLogger(__name__)

COLLECTION_KEY = "insect_collection"
PROFILE_KEY = "user_profile"
HISTORY_KEY = "battle_history"
INVENTORY_KEY = "game_data"
WORLD_PROGRESS_KEY = "all_world_progress"
EVENT_PROGRESS_KEY = "event_progress"

# (captures needed, rank); the highest satisfied threshold wins.
RANK_THRESHOLDS: list[tuple[int, int]] = [
    (200, 10), (150, 9), (100, 8), (75, 7), (50, 6),
    (35, 5), (20, 4), (10, 3), (5, 2),
]


def experience_for_level(level: int) -> int:
    """XP needed to go from `level - 1` to `level`."""
    return math.floor(100 * math.pow(level, 1.5))


class ProgressionService:
    """Reads and writes player progression through a KeyValueStore."""

    def __init__(self, store: KeyValueStore, content: ContentDatabase):
        self.store = store
        self.content = content

    # Roster

    def _serialize_captured(self, captured: CapturedInsect) -> dict:
        return {
            "id": captured.id,
            "insect_id": captured.insect.id,
            "captured_at": captured.captured_at,
            "location": captured.location,
            "level": captured.level,
            "experience": captured.experience,
            "equipped_skills": {
                "normal": list(captured.equipped_skills.normal),
                "ultimate": captured.equipped_skills.ultimate,
            },
        }

    def _deserialize_captured(self, data: dict) -> CapturedInsect:
        skills = data.get("equipped_skills") or {}
        return CapturedInsect(
            id=data["id"],
            insect=self.content.get_insect(data["insect_id"]),
            captured_at=data.get("captured_at", 0.0),
            location=data.get("location", ""),
            level=data.get("level", 1),
            experience=data.get("experience", 0),
            equipped_skills=EquippedSkills(
                normal=list(skills.get("normal", [])),
                ultimate=skills.get("ultimate")
            )
        )

    def get_collection(self) -> list[CapturedInsect]:
        return [self._deserialize_captured(c) for c in self.store.get(COLLECTION_KEY, [])]

    def get_captured(self, captured_id: str) -> CapturedInsect:
        for data in self.store.get(COLLECTION_KEY, []):
            if data["id"] == captured_id:
                return self._deserialize_captured(data)
        raise ContentReferenceError(f"No captured insect '{captured_id}' in the collection")

    def save_captured(self, captured: CapturedInsect) -> None:
        """Replace the stored record of a captured insect."""
        collection = self.store.get(COLLECTION_KEY, [])
        for index, data in enumerate(collection):
            if data["id"] == captured.id:
                collection[index] = self._serialize_captured(captured)
                self.store.set(COLLECTION_KEY, collection)
                return
        raise ContentReferenceError(f"No captured insect '{captured.id}' in the collection")

    def add_to_collection(self, insect_id: str, location: str = "") -> CapturedInsect:
        """Capture an insect at level 1 with its base skills equipped."""
        insect = self.content.get_insect(insect_id)
        now = time.time()
        captured = CapturedInsect(
            id=f"{insect.id}_{int(now * 1000)}_{uuid.uuid4().hex[:8]}",
            insect=insect,
            captured_at=now,
            location=location,
            equipped_skills=EquippedSkills(
                normal=list(insect.base_skills.normal),
                ultimate=insect.base_skills.ultimate
            )
        )

        collection = self.store.get(COLLECTION_KEY, [])
        collection.append(self._serialize_captured(captured))
        self.store.set(COLLECTION_KEY, collection)

        for skill_id in insect.base_skills.skill_ids():
            self.add_skill(skill_id)

        profile = self.get_profile()
        profile.total_captures += 1
        profile.rank = self.calculate_rank(profile.total_captures)
        self.save_profile(profile)

        logger.info("Captured %s (%s)", insect.name, captured.id)
        return captured

    def equip_skills(self, captured_id: str, normal: list[str],
                     ultimate: str | None = None) -> CapturedInsect:
        """
        Replace the loadout of a captured insect.

        Raises:
            ValueError: More than three normal skills
            ContentReferenceError: Unknown skill, or a skill in the wrong slot
        """
        if len(normal) > MAX_NORMAL_SKILLS:
            raise ValueError(f"At most {MAX_NORMAL_SKILLS} normal skills can be equipped")

        for skill_id in normal:
            if self.content.get_skill(skill_id).type != SkillType.NORMAL:
                raise ContentReferenceError(f"Skill '{skill_id}' is not a normal skill")
        if ultimate and self.content.get_skill(ultimate).type != SkillType.ULTIMATE:
            raise ContentReferenceError(f"Skill '{ultimate}' is not an ultimate skill")

        captured = self.get_captured(captured_id)
        captured.equipped_skills = EquippedSkills(normal=list(normal), ultimate=ultimate)
        self.save_captured(captured)
        return captured

    def get_level_scaled_stats(self, captured: CapturedInsect) -> Stats:
        """Base stats from content with the level multiplier applied."""
        base = self.content.get_insect_base_stats(captured.insect.id)
        return base.scaled_by_level(captured.level)

    # Profile

    def get_profile(self) -> Profile:
        data = self.store.get(PROFILE_KEY)
        return Profile(**data) if data else Profile()

    def save_profile(self, profile: Profile) -> None:
        self.store.set(PROFILE_KEY, asdict(profile))

    @staticmethod
    def calculate_rank(total_captures: int) -> int:
        for captures, rank in RANK_THRESHOLDS:
            if total_captures >= captures:
                return rank
        return 1

    # Currencies and inventory

    def _get_inventory(self) -> dict:
        inventory = self.store.get(INVENTORY_KEY, {})
        inventory.setdefault("rolls", 0)
        inventory.setdefault("potions", {potion_type: 0 for potion_type in POTION_TYPES})
        inventory.setdefault("owned_skills", [])
        return inventory

    def grant_currency(self, amount: int) -> int:
        """Add coins; returns the new balance."""
        profile = self.get_profile()
        profile.coins += amount
        self.save_profile(profile)
        return profile.coins

    def grant_rolls(self, amount: int) -> int:
        inventory = self._get_inventory()
        inventory["rolls"] += amount
        self.store.set(INVENTORY_KEY, inventory)
        return inventory["rolls"]

    def grant_potion(self, potion_type: str, amount: int = 1) -> int:
        if potion_type not in POTION_TYPES:
            raise ValueError(f"Unknown potion type '{potion_type}'")
        inventory = self._get_inventory()
        inventory["potions"][potion_type] = inventory["potions"].get(potion_type, 0) + amount
        self.store.set(INVENTORY_KEY, inventory)
        return inventory["potions"][potion_type]

    def grant_potions(self, potions: PotionBundle) -> None:
        for potion_type, amount in potions.items():
            self.grant_potion(potion_type, amount)

    def get_rolls(self) -> int:
        return self._get_inventory()["rolls"]

    def get_potions(self) -> dict[str, int]:
        return self._get_inventory()["potions"]

    def add_skill(self, skill_id: str) -> None:
        """Add a skill to the owned skill list if it is not there yet."""
        self.content.get_skill(skill_id)
        inventory = self._get_inventory()
        if skill_id not in inventory["owned_skills"]:
            inventory["owned_skills"].append(skill_id)
            self.store.set(INVENTORY_KEY, inventory)

    def get_owned_skills(self) -> list[str]:
        return self._get_inventory()["owned_skills"]

    # Experience

    def grant_experience(self, captured_id: str, amount: int) -> ExperienceResult:
        """
        Add experience to a captured insect, cascading level-ups.

        Leftover XP carries over to the next level. Insects at the level cap
        gain nothing.

        Returns:
            ExperienceResult with the new level when at least one level was gained
        """
        captured = self.get_captured(captured_id)
        max_level = self.content.config.max_level

        if captured.level >= max_level:
            return ExperienceResult(leveled_up=False, overflow=captured.experience)

        captured.experience += amount
        start_level = captured.level

        while captured.level < max_level:
            needed = experience_for_level(captured.level + 1)
            if captured.experience < needed:
                break
            captured.experience -= needed
            captured.level += 1

        self.save_captured(captured)

        if captured.level > start_level:
            logger.info("%s reached level %d", captured.name, captured.level)
            return ExperienceResult(
                leveled_up=True,
                new_level=captured.level,
                overflow=captured.experience
            )
        return ExperienceResult(leveled_up=False, overflow=captured.experience)

    # Completion flags

    def mark_stage_complete(self, world_id: int, stage_id: int) -> None:
        progress = self.store.get(WORLD_PROGRESS_KEY, {})
        stages = progress.setdefault(str(world_id), [])
        if stage_id not in stages:
            stages.append(stage_id)
            self.store.set(WORLD_PROGRESS_KEY, progress)

    def is_stage_complete(self, world_id: int, stage_id: int) -> bool:
        return stage_id in self.store.get(WORLD_PROGRESS_KEY, {}).get(str(world_id), [])

    def mark_challenge_complete(self, event_id: int, challenge_id: int) -> None:
        progress = self.store.get(EVENT_PROGRESS_KEY, {})
        challenges = progress.setdefault(str(event_id), [])
        if challenge_id not in challenges:
            challenges.append(challenge_id)
            self.store.set(EVENT_PROGRESS_KEY, progress)

    def is_challenge_complete(self, event_id: int, challenge_id: int) -> bool:
        return challenge_id in self.store.get(EVENT_PROGRESS_KEY, {}).get(str(event_id), [])

    # Battle history

    def record_battle_outcome(self, record: BattleRecord) -> None:
        """Prepend a battle to the history and bump the win/loss counters."""
        if not record.timestamp:
            record.timestamp = time.time()

        history = self.store.get(HISTORY_KEY, [])
        history.insert(0, asdict(record))
        del history[self.content.config.history_limit:]
        self.store.set(HISTORY_KEY, history)

        profile = self.get_profile()
        if record.won:
            profile.battles_won += 1
        else:
            profile.battles_lost += 1
        self.save_profile(profile)

    def get_battle_history(self) -> list[BattleRecord]:
        return [BattleRecord(**entry) for entry in self.store.get(HISTORY_KEY, [])]

    # Unlocks

    def is_world_unlocked(self, world_id: int, rank: int | None = None) -> bool:
        world = self.content.worlds.get(world_id)
        if world is None:
            return False
        if world_id == 1:
            return True

        rank = self.get_profile().rank if rank is None else rank
        if world.unlock.rank and rank < world.unlock.rank:
            return False

        previous_id = world.unlock.previous_world_completed
        if previous_id:
            previous = self.content.worlds.get(previous_id)
            if previous is None:
                return False
            return all(self.is_stage_complete(previous_id, stage.id) for stage in previous.stages)

        return True

    def is_stage_unlocked(self, world_id: int, stage_id: int, rank: int | None = None) -> bool:
        world = self.content.worlds.get(world_id)
        if world is None:
            return False

        stage_ids = [stage.id for stage in world.stages]
        if stage_id not in stage_ids:
            return False

        rank = self.get_profile().rank if rank is None else rank
        stage = world.stages[stage_ids.index(stage_id)]
        if rank < stage.required_rank:
            return False

        if world_id == 1 and stage_id == 1:
            return True

        index = stage_ids.index(stage_id)
        if index == 0:
            return self.is_world_unlocked(world_id, rank)
        return self.is_stage_complete(world_id, stage_ids[index - 1])
