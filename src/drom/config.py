# config.py
from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional

from .model import Clean, Config, ConfigError, Generate, Group, Project
from .ui.console import get_console

DEFAULT_CONFIG_FILE = "drom.toml"
DEFAULT_COMMANDS_FILE = "commands.toml"


# ----------------------------------------------------------------------
# Field helpers
# ----------------------------------------------------------------------

def _loads(content: str, source: str) -> Dict[str, Any]:
    try:
        return tomllib.loads(content)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {source}: {e}") from e


def _str_field(entry: Dict[str, Any], key: str, where: str) -> str:
    value = entry.get(key)
    if value is None:
        raise ConfigError(f"{where}: missing required field '{key}'")
    if not isinstance(value, str):
        raise ConfigError(f"{where}: field '{key}' must be a string, got {type(value).__name__}")
    return value


def _str_list(value: Any, key: str, where: str) -> tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{where}: field '{key}' must be a list of strings")
    return tuple(value)


def _optional_str_list(entry: Dict[str, Any], key: str, where: str) -> Optional[tuple[str, ...]]:
    if key not in entry:
        return None
    return _str_list(entry[key], key, where)


def _tables(doc: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    value = doc.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, dict) for v in value):
        raise ConfigError(f"[[{key}]] must be an array of tables")
    return value


def _where(section: str, idx: int, entry: Dict[str, Any]) -> str:
    name = entry.get("name")
    if isinstance(name, str):
        return f"[[{section}]] '{name}'"
    return f"[[{section}]] #{idx + 1}"


# ----------------------------------------------------------------------
# drom.toml
# ----------------------------------------------------------------------

def parse_config(content: str, source: str = DEFAULT_CONFIG_FILE) -> Config:
    """
    Parse a drom.toml document.

    Every section is optional; unknown keys are ignored.
    """
    doc = _loads(content, source)

    clean: Optional[Clean] = None
    if "clean" in doc:
        section = doc["clean"]
        if not isinstance(section, dict):
            raise ConfigError("[clean] must be a table")
        if "directories" not in section:
            raise ConfigError("[clean]: missing required field 'directories'")
        clean = Clean(directories=_str_list(section["directories"], "directories", "[clean]"))

    generate = []
    for idx, entry in enumerate(_tables(doc, "generate")):
        where = _where("generate", idx, entry)
        generate.append(
            Generate(
                name=_str_field(entry, "name", where),
                command=_str_field(entry, "command", where),
            )
        )

    projects = []
    for idx, entry in enumerate(_tables(doc, "project")):
        where = _where("project", idx, entry)
        projects.append(
            Project(
                name=_str_field(entry, "name", where),
                command=_str_field(entry, "command", where),
                args=_optional_str_list(entry, "args", where),
                depends_on=_optional_str_list(entry, "depends_on", where),
            )
        )

    groups = []
    for idx, entry in enumerate(_tables(doc, "group")):
        where = _where("group", idx, entry)
        if "projects" not in entry:
            raise ConfigError(f"{where}: missing required field 'projects'")
        groups.append(
            Group(
                name=_str_field(entry, "name", where),
                projects=_str_list(entry["projects"], "projects", where),
            )
        )

    return Config(
        clean=clean,
        generate=tuple(generate),
        projects=tuple(projects),
        groups=tuple(groups),
    )


def load_config(path: str | Path = DEFAULT_CONFIG_FILE) -> Config:
    """
    Read and parse a config file.

    Raises:
        FileNotFoundError: If the file is missing
        OSError: If the path cannot be read (a directory, no permission)
        ConfigError: If the content is not UTF-8 TOML of the expected shape
    """
    cfg_path = Path(path)
    try:
        content = cfg_path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ConfigError(f"{cfg_path} is not valid UTF-8: {e}") from e
    return parse_config(content, source=str(cfg_path))


# ----------------------------------------------------------------------
# commands.toml (alias table)
# ----------------------------------------------------------------------

def parse_commands(content: str, source: str = DEFAULT_COMMANDS_FILE) -> Dict[str, str]:
    """Parse a flat `alias = "literal command"` table."""
    doc = _loads(content, source)
    bad = sorted(k for k, v in doc.items() if not isinstance(v, str))
    if bad:
        raise ConfigError(f"{source}: alias values must be strings (offending keys: {bad})")
    return dict(doc)


def load_commands(path: str | Path = DEFAULT_COMMANDS_FILE) -> Dict[str, str]:
    """
    Load the alias table.

    A missing or malformed file yields an empty table, so every project
    command is then used as a literal.
    """
    cmd_path = Path(path)
    console = get_console()
    try:
        content = cmd_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        console.print_debug(f"No alias table at {cmd_path}, using commands as written")
        return {}
    except (OSError, UnicodeDecodeError) as e:
        console.print_debug(f"Ignoring unreadable alias table {cmd_path}: {e}")
        return {}

    try:
        return parse_commands(content, source=str(cmd_path))
    except ConfigError as e:
        console.print_debug(f"Ignoring alias table: {e}")
        return {}
