"""
YAML parser for loading game content and tunables.
"""

import logging
from datetime import date
from pathlib import Path
from typing import Any, Callable

import yaml

from .content import ContentDatabase
from .errors import ContentLoadError
from .models import (
    EquippedSkills, EventChallenge, GameConfig, Insect, Opponent,
    PotionBundle, PresentationDelays, Rarity, RarityTier, Rewards,
    Skill, SkillEffects, SkillType, SpecialAbility, SpecialEvent,
    Stage, StageBoss, Stats, World, WorldUnlock
)


logger = logging.getLogger(__name__)

DEFAULT_CONTENT_PATH = Path(__file__).parent / "content"


class YAMLParser:
    """Parser for loading YAML content data."""

    def __init__(self, content_path: Path):
        self.content_path = content_path
        self.insects: dict[str, Insect] = {}
        self.skills: dict[str, Skill] = {}
        self.worlds: dict[int, World] = {}
        self.events: dict[int, SpecialEvent] = {}
        self.config: GameConfig = GameConfig()

    def load_content(self) -> ContentDatabase:
        """Load all content under the content path and validate references."""
        if not self.content_path.exists():
            raise ContentLoadError(f"Content path '{self.content_path}' not found")

        config_path = self.content_path / "game.yaml"
        if config_path.exists():
            self.config = self._parse_config(self._read_yaml(config_path) or {})
        else:
            logger.warning("No game.yaml in %s, using default config", self.content_path)

        self._load_directory(self.content_path / "skills", self._parse_skill)
        self._load_directory(self.content_path / "insects", self._parse_insect)
        self._load_directory(self.content_path / "worlds", self._parse_world)
        self._load_directory(self.content_path / "events", self._parse_event)

        logger.info(
            "Loaded %d insects, %d skills, %d worlds, %d events from %s",
            len(self.insects), len(self.skills), len(self.worlds),
            len(self.events), self.content_path
        )

        content = ContentDatabase(
            insects=self.insects,
            skills=self.skills,
            worlds=self.worlds,
            events=self.events,
            config=self.config
        )
        content.validate()
        return content

    def _read_yaml(self, path: Path) -> Any:
        """Read one YAML document."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                return yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ContentLoadError(f"Invalid YAML in {path}: {e}") from e

    def _load_directory(self, path: Path, parser_func: Callable[[dict], None]) -> None:
        """Load all YAML files from a directory."""
        if not path.exists():
            logger.warning("Content directory not found: %s", path)
            return

        for yaml_file in sorted(path.glob("*.yaml")):
            data = self._read_yaml(yaml_file)
            if not data:
                logger.warning("Skipping empty content file %s", yaml_file)
                continue
            try:
                parser_func(data)
            except (KeyError, TypeError, ValueError) as e:
                raise ContentLoadError(f"Malformed content in {yaml_file}: {e}") from e

    def _parse_config(self, data: dict) -> GameConfig:
        """Parse game.yaml."""
        game_data = data.get("game", data)
        defaults = GameConfig()

        tiers = [
            RarityTier(
                above_level=tier_data.get("above_level", 0),
                rarities=tuple(Rarity(r) for r in tier_data.get("rarities", []))
            )
            for tier_data in game_data.get("rarity_tiers", [])
        ]

        delays_data = game_data.get("delays", {})
        base_delays = PresentationDelays()
        delays = PresentationDelays(
            matching=delays_data.get("matching", base_delays.matching),
            event_start=delays_data.get("event_start", base_delays.event_start),
            initiative=delays_data.get("initiative", base_delays.initiative),
            initiative_display=delays_data.get("initiative_display", base_delays.initiative_display),
            opponent_turn=delays_data.get("opponent_turn", base_delays.opponent_turn),
            action=delays_data.get("action", base_delays.action),
            turn_handover=delays_data.get("turn_handover", base_delays.turn_handover)
        )

        return GameConfig(
            opponent_names=game_data.get("opponent_names") or defaults.opponent_names,
            rarity_tiers=tiers or defaults.rarity_tiers,
            history_limit=game_data.get("history_limit", defaults.history_limit),
            max_level=game_data.get("max_level", defaults.max_level),
            delays=delays
        )

    def _parse_stats(self, stats_data: dict) -> Stats:
        """Parse a stats block."""
        return Stats(
            health=stats_data.get("health", 100),
            attack=stats_data.get("attack", 50),
            defense=stats_data.get("defense", 50),
            speed=stats_data.get("speed", 50)
        )

    def _parse_rewards(self, rewards_data: dict) -> Rewards:
        """Parse a rolls + potions reward block."""
        potions_data = rewards_data.get("potions") or {}
        return Rewards(
            rolls=rewards_data.get("rolls", 0),
            potions=PotionBundle(
                luck=potions_data.get("luck", 0),
                xp=potions_data.get("xp", 0),
                energy=potions_data.get("energy", 0)
            )
        )

    def _parse_skill(self, data: dict) -> None:
        """Parse skills from YAML data."""
        if "skills" in data:
            for skill_item in data["skills"]:
                self._parse_single_skill(skill_item)
        else:
            self._parse_single_skill(data.get("skill", data))

    def _parse_single_skill(self, skill_data: dict) -> None:
        """Parse a single skill."""
        effects_data = skill_data.get("effects") or {}
        effects = SkillEffects(
            healing=effects_data.get("healing", 0),
            shield=effects_data.get("shield", 0),
            lifesteal=effects_data.get("lifesteal", 0),
            burn=effects_data.get("burn", 0),
            stun=effects_data.get("stun", False),
            energy_restore=effects_data.get("energy_restore", 0)
        )

        skill = Skill(
            id=skill_data["id"],
            name=skill_data.get("name", skill_data["id"]),
            type=SkillType(skill_data.get("type", "normal")),
            rarity=skill_data.get("rarity", "common"),
            description=skill_data.get("description", ""),
            energy_cost=skill_data.get("energy_cost", 0),
            damage_multiplier=float(skill_data.get("damage_multiplier", 1.0)),
            effects=effects
        )

        self.skills[skill.id] = skill

    def _parse_insect(self, data: dict) -> None:
        """Parse insects from YAML data."""
        if "insects" in data:
            for insect_item in data["insects"]:
                self._parse_single_insect(insect_item)
        else:
            self._parse_single_insect(data.get("insect", data))

    def _parse_single_insect(self, insect_data: dict) -> None:
        """Parse a single insect."""
        skills_data = insect_data.get("base_skills") or {}
        base_skills = EquippedSkills(
            normal=list(skills_data.get("normal", [])),
            ultimate=skills_data.get("ultimate")
        )

        insect = Insect(
            id=insect_data["id"],
            name=insect_data.get("name", insect_data["id"]),
            rarity=Rarity(insect_data.get("rarity", "common")),
            stats=self._parse_stats(insect_data.get("stats", {})),
            scientific_name=insect_data.get("scientific_name", ""),
            type=insect_data.get("type", "good"),
            description=insect_data.get("description", ""),
            emoji=insect_data.get("emoji", ""),
            base_skills=base_skills
        )

        self.insects[insect.id] = insect

    def _parse_world(self, data: dict) -> None:
        """Parse worlds from YAML data."""
        if "worlds" in data:
            for world_item in data["worlds"]:
                self._parse_single_world(world_item)
        else:
            self._parse_single_world(data.get("world", data))

    def _parse_stage(self, stage_data: dict) -> Stage:
        """Parse a stage."""
        boss = None
        if stage_data.get("boss"):
            boss_data = stage_data["boss"]
            boss = StageBoss(
                name=boss_data["name"],
                insect_id=boss_data["insect_id"],
                level_boost=boss_data.get("level_boost", 0),
                stat_multiplier=float(boss_data.get("stat_multiplier", 1.0)),
                passive_boost=tuple(boss_data.get("passive_boost", []))
            )

        return Stage(
            id=stage_data["id"],
            name=stage_data.get("name", ""),
            difficulty=stage_data.get("difficulty", 1),
            required_rank=stage_data.get("required_rank", 1),
            rewards=self._parse_rewards(stage_data.get("rewards", {})),
            opponent_level=stage_data.get("opponent_level", 1),
            opponent_count=stage_data.get("opponent_count", 1),
            boss=boss
        )

    def _parse_single_world(self, world_data: dict) -> None:
        """Parse a single world."""
        unlock_data = world_data.get("unlock") or {}
        world = World(
            id=world_data["id"],
            name=world_data.get("name", ""),
            emoji=world_data.get("emoji", ""),
            description=world_data.get("description", ""),
            stages=[self._parse_stage(stage) for stage in world_data.get("stages", [])],
            unlock=WorldUnlock(
                rank=unlock_data.get("rank"),
                previous_world_completed=unlock_data.get("previous_world_completed")
            )
        )

        self.worlds[world.id] = world

    def _parse_event(self, data: dict) -> None:
        """Parse events from YAML data."""
        if "events" in data:
            for event_item in data["events"]:
                self._parse_single_event(event_item)
        else:
            self._parse_single_event(data.get("event", data))

    def _parse_enemy(self, enemy_data: dict) -> Opponent:
        """Parse an event enemy."""
        return Opponent(
            name=enemy_data["name"],
            stats=self._parse_stats(enemy_data.get("stats", {})),
            rarity=Rarity(enemy_data.get("rarity", "common")),
            level=enemy_data.get("level", 1),
            emoji=enemy_data.get("emoji", ""),
            special_ability=SpecialAbility.parse(enemy_data.get("special_ability")),
            is_boss=enemy_data.get("boss", False)
        )

    def _parse_challenge(self, challenge_data: dict) -> EventChallenge:
        """Parse an event challenge."""
        return EventChallenge(
            id=challenge_data["id"],
            name=challenge_data.get("name", ""),
            description=challenge_data.get("description", ""),
            difficulty=challenge_data.get("difficulty", 1),
            requirement=challenge_data.get("requirement", ""),
            enemy_team=[self._parse_enemy(e) for e in challenge_data.get("enemy_team", [])],
            special_rules=list(challenge_data.get("special_rules", [])),
            rewards=self._parse_rewards(challenge_data.get("rewards", {})),
            exclusive_reward=challenge_data.get("exclusive_reward", "")
        )

    def _parse_single_event(self, event_data: dict) -> None:
        """Parse a single event."""
        event = SpecialEvent(
            id=event_data["id"],
            name=event_data.get("name", ""),
            description=event_data.get("description", ""),
            emoji=event_data.get("emoji", ""),
            start_date=_parse_date(event_data.get("start_date")),
            end_date=_parse_date(event_data.get("end_date")),
            challenges=[self._parse_challenge(c) for c in event_data.get("challenges", [])],
            special_mechanics=list(event_data.get("special_mechanics", []))
        )

        self.events[event.id] = event


def _parse_date(value: Any) -> date | None:
    """Accept YAML dates or ISO strings."""
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def load_content(content_path: str | Path | None = None) -> ContentDatabase:
    """Load content from a directory, defaulting to the bundled content."""
    path = Path(content_path) if content_path else DEFAULT_CONTENT_PATH
    return YAMLParser(path).load_content()
