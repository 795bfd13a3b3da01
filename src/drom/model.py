# model.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional


class ConfigError(ValueError):
    """Raised when a configuration is structurally invalid."""


@dataclass(frozen=True)
class Clean:
    """Directories removed (in parallel) before anything else runs."""
    directories: tuple[str, ...] = ()


@dataclass(frozen=True)
class Generate:
    """A one-shot command whose name projects can declare as a dependency."""
    name: str
    command: str  # always literal, never an alias key


@dataclass(frozen=True)
class Project:
    """
    A named unit of work.

    `command` is either a literal command line or a key into the alias table.
    `depends_on` names Generate tasks (not projects).
    """
    name: str
    command: str
    args: Optional[tuple[str, ...]] = None
    depends_on: Optional[tuple[str, ...]] = None


@dataclass(frozen=True)
class Group:
    name: str
    projects: tuple[str, ...] = ()


def _duplicates(names: Iterable[str]) -> List[str]:
    names = list(names)
    return sorted({n for n in names if names.count(n) > 1})


@dataclass(frozen=True)
class Config:
    """
    Parsed drom.toml.

    Sequences keep declaration order. Names are unique per collection; a
    duplicate is rejected here rather than letting one definition shadow
    the other.
    """
    clean: Optional[Clean] = None
    generate: tuple[Generate, ...] = ()
    projects: tuple[Project, ...] = ()
    groups: tuple[Group, ...] = ()

    def __post_init__(self) -> None:
        for label, items in (
            ("generate task", self.generate),
            ("project", self.projects),
            ("group", self.groups),
        ):
            dupes = _duplicates(item.name for item in items)
            if dupes:
                raise ConfigError(f"Duplicate {label} names found: {dupes}")

    # ------------------------------------------------------------------
    # Group index
    # ------------------------------------------------------------------

    def group_names(self) -> List[str]:
        return [g.name for g in self.groups]

    def projects_of(self, group_name: str) -> Optional[List[Project]]:
        """
        Projects listed by `group_name`, in the group's order.

        Returns None when the group does not exist. Member names with no
        matching project are skipped.
        """
        group = next((g for g in self.groups if g.name == group_name), None)
        if group is None:
            return None

        by_name = {p.name: p for p in self.projects}
        return [by_name[name] for name in group.projects if name in by_name]

    def unresolved_references(self) -> List[str]:
        """Dangling names that do not make the config invalid but are likely typos."""
        problems: List[str] = []
        generate_names = {g.name for g in self.generate}
        project_names = {p.name for p in self.projects}

        for project in self.projects:
            for dep in project.depends_on or ():
                if dep not in generate_names:
                    problems.append(
                        f"project '{project.name}' depends on unknown generate task '{dep}'"
                    )

        for group in self.groups:
            for member in group.projects:
                if member not in project_names:
                    problems.append(f"group '{group.name}' lists unknown project '{member}'")

        return problems
