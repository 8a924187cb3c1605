# Bug Arena
# Turn-based insect battle engine with YAML content and pluggable progression storage

__version__ = "1.0.0"

from .core import GameEngine
from .models import *
from .state_machine import StateMachine
from .battle import BattleSession, BattleSetup, BattleState
from .content import ContentDatabase
from .progression import ProgressionService
from .rules import BattleRules
from .store import InMemoryStore, JsonFileStore, KeyValueStore
from .yaml_parser import YAMLParser, load_content
from .errors import (
    BugArenaError, ContentError, ContentLoadError,
    ContentReferenceError, BattleStateError
)

__all__ = [
    "GameEngine",
    "StateMachine",
    "BattleSession",
    "BattleSetup",
    "BattleState",
    "BattleRules",
    "ContentDatabase",
    "ProgressionService",
    "KeyValueStore",
    "InMemoryStore",
    "JsonFileStore",
    "YAMLParser",
    "load_content",
    "BugArenaError",
    "ContentError",
    "ContentLoadError",
    "ContentReferenceError",
    "BattleStateError",
]
