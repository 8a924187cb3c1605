"""
Read-only content lookups.
Every lookup of an unknown ID raises ContentReferenceError.
"""

import copy
from datetime import date
from typing import Iterable

from .errors import ContentReferenceError
from .models import (
    EventChallenge, GameConfig, Insect, Opponent, Rarity,
    Skill, SkillType, SpecialEvent, Stage, Stats, World, MAX_NORMAL_SKILLS
)


class ContentDatabase:
    """Static insect, skill, world and event definitions."""

    def __init__(self, insects: dict[str, Insect] | None = None,
                 skills: dict[str, Skill] | None = None,
                 worlds: dict[int, World] | None = None,
                 events: dict[int, SpecialEvent] | None = None,
                 config: GameConfig | None = None):
        self.insects = insects or {}
        self.skills = skills or {}
        self.worlds = worlds or {}
        self.events = events or {}
        self.config = config or GameConfig()

    def get_insect(self, insect_id: str) -> Insect:
        insect = self.insects.get(insect_id)
        if insect is None:
            raise ContentReferenceError(f"Unknown insect '{insect_id}'")
        return insect

    def get_insect_base_stats(self, insect_id: str) -> Stats:
        return self.get_insect(insect_id).stats

    def get_skill(self, skill_id: str) -> Skill:
        skill = self.skills.get(skill_id)
        if skill is None:
            raise ContentReferenceError(f"Unknown skill '{skill_id}'")
        return skill

    def get_world(self, world_id: int) -> World:
        world = self.worlds.get(world_id)
        if world is None:
            raise ContentReferenceError(f"Unknown world {world_id}")
        return world

    def get_stage_config(self, world_id: int, stage_id: int) -> Stage:
        for stage in self.get_world(world_id).stages:
            if stage.id == stage_id:
                return stage
        raise ContentReferenceError(f"Unknown stage {stage_id} in world {world_id}")

    def get_event(self, event_id: int) -> SpecialEvent:
        event = self.events.get(event_id)
        if event is None:
            raise ContentReferenceError(f"Unknown event {event_id}")
        return event

    def get_challenge(self, event_id: int, challenge_id: int) -> EventChallenge:
        for challenge in self.get_event(event_id).challenges:
            if challenge.id == challenge_id:
                return challenge
        raise ContentReferenceError(f"Unknown challenge {challenge_id} in event {event_id}")

    def get_event_enemy_team(self, event_id: int, challenge_id: int) -> list[Opponent]:
        """Fresh copies of a challenge's enemy team."""
        challenge = self.get_challenge(event_id, challenge_id)
        return [copy.copy(enemy) for enemy in challenge.enemy_team]

    def insects_with_rarity(self, rarities: Iterable[Rarity]) -> list[Insect]:
        """Insects of the given rarities, in load order."""
        wanted = set(rarities)
        return [insect for insect in self.insects.values() if insect.rarity in wanted]

    def active_events(self, today: date) -> list[SpecialEvent]:
        return [event for event in self.events.values() if event.is_active(today)]

    def validate(self) -> None:
        """Check cross-references between content records."""
        for insect in self.insects.values():
            base = insect.base_skills
            if len(base.normal) > MAX_NORMAL_SKILLS:
                raise ContentReferenceError(
                    f"Insect '{insect.id}' has more than {MAX_NORMAL_SKILLS} base skills"
                )
            for skill_id in base.normal:
                if self.get_skill(skill_id).type != SkillType.NORMAL:
                    raise ContentReferenceError(
                        f"Insect '{insect.id}' lists ultimate skill '{skill_id}' as normal"
                    )
            if base.ultimate and self.get_skill(base.ultimate).type != SkillType.ULTIMATE:
                raise ContentReferenceError(
                    f"Insect '{insect.id}' lists normal skill '{base.ultimate}' as ultimate"
                )

        for world in self.worlds.values():
            for stage in world.stages:
                if stage.boss:
                    self.get_insect(stage.boss.insect_id)
            previous = world.unlock.previous_world_completed
            if previous is not None:
                self.get_world(previous)
