# runner.py
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from .executor import CommandExecutor, DirectoryRemover, FilesystemRemover, ShellExecutor
from .model import Config, ConfigError, Generate, Project
from .ui.console import Console, get_console


# ----------------------------------------------------------------------
# Errors
# ----------------------------------------------------------------------

class ExecutionError(Exception):
    """
    A failure that aborts a run.

    Subclasses carry enough context (task/project name, literal command,
    exit code) to diagnose without re-running.
    """
    kind = "execution_error"

    def message(self) -> str:
        return self.kind

    def details(self) -> Dict[str, object]:
        return {}

    def __str__(self) -> str:
        lines = [f"{self.kind}: {self.message()}"]
        for k, v in self.details().items():
            if v is not None:
                lines.append(f"{k}={v}")
        return "\n".join(lines)


@dataclass
class SpawnFailed(ExecutionError):
    command: str
    cause: BaseException
    task: Optional[str] = None

    kind = "spawn_failed"

    def message(self) -> str:
        return f"could not start process: {self.cause}"

    def details(self) -> Dict[str, object]:
        return {"task": self.task, "command": self.command}


@dataclass
class CommandFailed(ExecutionError):
    command: str
    exit_code: Optional[int]
    task: Optional[str] = None

    kind = "command_failed"

    def message(self) -> str:
        if self.exit_code is None:
            return "command terminated abnormally (no exit code)"
        return f"command exited with code {self.exit_code}"

    def details(self) -> Dict[str, object]:
        return {"task": self.task, "command": self.command, "exit_code": self.exit_code}


@dataclass
class CleanupFailed(ExecutionError):
    """
    First clean failure of a stage.

    `outcomes` maps every directory of the stage to "ok" or "failed" once
    the whole stage has finished (empty for a single-directory error).
    """
    directory: str
    cause: BaseException
    outcomes: Dict[str, str] = field(default_factory=dict)

    kind = "cleanup_failed"

    def message(self) -> str:
        return f"could not remove directory: {self.cause}"

    def details(self) -> Dict[str, object]:
        others = sorted(d for d, s in self.outcomes.items() if s == "failed" and d != self.directory)
        return {"directory": self.directory, "also_failed": others or None}


@dataclass
class DependencyUnmet(ExecutionError):
    project: str
    dependency: str

    kind = "dependency_unmet"

    def message(self) -> str:
        return (
            f"dependency '{self.dependency}' for project '{self.project}' "
            f"not found or failed"
        )

    def details(self) -> Dict[str, object]:
        return {"project": self.project, "dependency": self.dependency}


# ----------------------------------------------------------------------
# Command resolution + execution primitives
# ----------------------------------------------------------------------

def resolve_command(
    command_key: str,
    args: Optional[Sequence[str]],
    commands: Mapping[str, str],
) -> str:
    """
    Turn a project command into a literal command line.

    An alias hit replaces the key with its mapped command; otherwise the key
    is already the command. Args are appended space-separated, unquoted.
    """
    if command_key in commands:
        base = commands[command_key]
    else:
        base = command_key

    if args is None:
        return base
    return " ".join([base, *args])


def run_command(
    command_line: str,
    executor: CommandExecutor,
    *,
    task: Optional[str] = None,
) -> None:
    """Run one command line to completion, raising on a non-zero exit."""
    try:
        exit_code = executor.run(command_line)
    except OSError as e:
        raise SpawnFailed(command=command_line, cause=e, task=task) from e

    if exit_code != 0:
        raise CommandFailed(command=command_line, exit_code=exit_code, task=task)


# ----------------------------------------------------------------------
# Stages
# ----------------------------------------------------------------------

def _clean_one(directory: str, remover: DirectoryRemover, console: Console) -> None:
    if not remover.exists(directory):
        return
    console.print_clean(directory)
    try:
        remover.remove(directory)
    except OSError as e:
        raise CleanupFailed(directory=directory, cause=e) from e


def clean(
    directories: Iterable[str],
    remover: DirectoryRemover,
    *,
    max_workers: int | None = None,
    console: Console | None = None,
) -> Dict[str, str]:
    """
    Remove every directory concurrently; missing ones are a no-op.

    All removals are submitted before any is awaited, so one failure never
    prevents the others from being attempted. Duplicates are collapsed.

    Returns:
        Map of directory -> "ok", in first-seen order.

    Raises:
        CleanupFailed: Once every worker has finished, for the first failure
            to complete; its `outcomes` covers every directory.
    """
    console = console or get_console()
    unique = list(dict.fromkeys(directories))
    if not unique:
        return {}

    workers = max_workers or len(unique)
    outcomes: Dict[str, str] = {d: "ok" for d in unique}
    failures: List[CleanupFailed] = []

    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = {pool.submit(_clean_one, d, remover, console): d for d in unique}

        for future in as_completed(futures):
            directory = futures[future]
            try:
                future.result()
            except CleanupFailed as e:
                failures.append(e)
                outcomes[directory] = "failed"
            except KeyboardInterrupt:
                raise
            except BaseException as e:
                # worker died on something other than an I/O error
                failures.append(CleanupFailed(directory=directory, cause=e))
                outcomes[directory] = "failed"

    if failures:
        first = failures[0]
        first.outcomes = outcomes
        raise first
    return outcomes


def run_generate(
    tasks: Iterable[Generate],
    executor: CommandExecutor,
    *,
    completed: Set[str] | None = None,
    console: Console | None = None,
) -> Set[str]:
    """
    Run generate tasks in declaration order, stopping at the first failure.

    `completed` (filled in place when given) holds the names of the tasks
    that succeeded, so on failure it is exactly the tasks before the one
    that failed.
    """
    console = console or get_console()
    if completed is None:
        completed = set()

    for task in tasks:
        console.print_generate(task.name)
        console.print_command(task.command)
        run_command(task.command, executor, task=task.name)
        completed.add(task.name)

    return completed


def check_dependencies(project: Project, completed_generate: Set[str]) -> None:
    for dep in project.depends_on or ():
        if dep not in completed_generate:
            raise DependencyUnmet(project=project.name, dependency=dep)


def run_projects(
    projects: Iterable[Project],
    completed_generate: Set[str],
    commands: Mapping[str, str],
    executor: CommandExecutor,
    *,
    console: Console | None = None,
) -> None:
    """Run projects in declaration order, gated on their generate dependencies."""
    console = console or get_console()

    for project in projects:
        check_dependencies(project, completed_generate)
        command_line = resolve_command(project.command, project.args, commands)
        console.print_project(project.name)
        console.print_command(command_line)
        run_command(command_line, executor, task=project.name)


# ----------------------------------------------------------------------
# Engine
# ----------------------------------------------------------------------

def select_projects(config: Config, group: str | None) -> List[Project]:
    """All projects, or only those of `group`. Raises ConfigError for an unknown group."""
    if group is None:
        return list(config.projects)
    projects = config.projects_of(group)
    if projects is None:
        raise ConfigError(f"Unknown group '{group}'. Known groups: {config.group_names()}")
    return projects


class Engine:
    """
    Clean -> Generate -> Project -> Done.

    Each stage runs only if the previous one succeeded; any failure moves the
    engine to "failed" and the error is re-raised. One Engine is one run:
    the completed-generate set and results live here, never on the Config.
    """

    CLEAN = "clean"
    GENERATE = "generate"
    PROJECT = "project"
    DONE = "done"
    FAILED = "failed"
    PENDING = "pending"

    def __init__(
        self,
        config: Config,
        commands: Mapping[str, str] | None = None,
        *,
        executor: CommandExecutor | None = None,
        remover: DirectoryRemover | None = None,
        clean_workers: int | None = None,
        console: Console | None = None,
    ):
        self.config = config
        self.commands = dict(commands or {})
        self.executor = executor or ShellExecutor()
        self.remover = remover or FilesystemRemover()
        self.clean_workers = clean_workers
        self.console = console or get_console()

        self.state = self.PENDING
        self.failed_stage: str | None = None
        self.completed_generate: Set[str] = set()
        self.results: Dict[str, str] = {}

    def run(self, group: str | None = None) -> Dict[str, str]:
        """
        Execute the whole configuration once.

        Args:
            group: Only run the projects listed by this group (clean and
                generate still run in full).

        Returns:
            Ordered map of "<stage>:<name>" -> "ok".

        Raises:
            ConfigError: If `group` does not exist (nothing is run).
            ExecutionError: On the first stage failure.
        """
        if self.state != self.PENDING:
            raise RuntimeError("Engine instances run once; create a new Engine")

        projects = select_projects(self.config, group)

        try:
            self.state = self.CLEAN
            self._run_clean()

            self.state = self.GENERATE
            self._run_generate()

            self.state = self.PROJECT
            self._run_projects(projects)
        except ExecutionError:
            self.failed_stage = self.state
            self.state = self.FAILED
            raise

        self.state = self.DONE
        return self.results

    def _run_clean(self) -> None:
        if self.config.clean is None:
            return
        self.console.print_stage(self.CLEAN)
        try:
            outcomes = clean(
                self.config.clean.directories,
                self.remover,
                max_workers=self.clean_workers,
                console=self.console,
            )
        except CleanupFailed as e:
            self._record_clean(e.outcomes or {e.directory: "failed"})
            self.console.print_failure(e.directory, str(e))
            raise
        self._record_clean(outcomes)

    def _record_clean(self, outcomes: Dict[str, str]) -> None:
        for d, status in outcomes.items():
            self.results[f"clean:{d}"] = status

    def _run_generate(self) -> None:
        if not self.config.generate:
            return
        self.console.print_stage(self.GENERATE)
        for task in self.config.generate:
            key = f"generate:{task.name}"
            try:
                run_generate([task], self.executor, completed=self.completed_generate, console=self.console)
            except ExecutionError as e:
                self.results[key] = "failed"
                self.console.print_failure(task.name, str(e), exit_code=getattr(e, "exit_code", None))
                raise
            self.results[key] = "ok"

    def _run_projects(self, projects: List[Project]) -> None:
        if not projects:
            return
        self.console.print_stage(self.PROJECT)
        for project in projects:
            key = f"project:{project.name}"
            try:
                run_projects(
                    [project],
                    self.completed_generate,
                    self.commands,
                    self.executor,
                    console=self.console,
                )
            except ExecutionError as e:
                self.results[key] = "failed"
                self.console.print_failure(project.name, str(e), exit_code=getattr(e, "exit_code", None))
                raise
            self.results[key] = "ok"


def execute_all(
    config: Config,
    commands: Mapping[str, str] | None = None,
    *,
    group: str | None = None,
    **engine_kwargs,
) -> Dict[str, str]:
    """Functional entrypoint: build an Engine and run it. See Engine.run."""
    return Engine(config, commands, **engine_kwargs).run(group=group)


# ----------------------------------------------------------------------
# Plan (dry run)
# ----------------------------------------------------------------------

def plan(
    config: Config,
    commands: Mapping[str, str] | None = None,
    group: str | None = None,
) -> List[Tuple[str, str, str]]:
    """
    What a run would do, without doing it.

    Returns:
        (stage, name, detail) rows in execution order; detail is the
        directory for clean rows and the literal command line otherwise.
    """
    commands = commands or {}
    rows: List[Tuple[str, str, str]] = []

    if config.clean is not None:
        for d in dict.fromkeys(config.clean.directories):
            rows.append((Engine.CLEAN, d, d))

    for task in config.generate:
        rows.append((Engine.GENERATE, task.name, task.command))

    for project in select_projects(config, group):
        rows.append((Engine.PROJECT, project.name, resolve_command(project.command, project.args, commands)))

    return rows
