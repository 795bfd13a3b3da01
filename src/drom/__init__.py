from .config import load_commands, load_config, parse_commands, parse_config
from .model import Clean, Config, ConfigError, Generate, Group, Project
from .runner import (
    CleanupFailed,
    CommandFailed,
    DependencyUnmet,
    Engine,
    ExecutionError,
    SpawnFailed,
    execute_all,
    resolve_command,
)

__all__ = [
    "load_commands", "load_config", "parse_commands", "parse_config",
    "Clean", "Config", "ConfigError", "Generate", "Group", "Project",
    "CleanupFailed", "CommandFailed", "DependencyUnmet", "Engine", "ExecutionError", "SpawnFailed",
    "execute_all", "resolve_command",
]
