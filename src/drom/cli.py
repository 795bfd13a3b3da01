# cli.py
from __future__ import annotations

import sys
from pathlib import Path

import click

from drom.config import DEFAULT_COMMANDS_FILE, DEFAULT_CONFIG_FILE, load_commands, load_config
from drom.model import Config, ConfigError
from drom.runner import Engine, ExecutionError, plan as build_plan, select_projects
from drom.ui.console import Console, get_console, set_console


def _load_or_exit(config_path: str) -> Config:
    """
    Load the config file, printing a structured error and exiting on failure.

    Raises:
        SystemExit: If the file is missing or invalid
    """
    console = get_console()
    path = Path(config_path)

    try:
        return load_config(path)
    except FileNotFoundError:
        console.print_error(
            "Config file not found",
            f"Could not find config file: {path}",
            suggestion=f"Create a {DEFAULT_CONFIG_FILE} or specify one explicitly:\n  drom run --config my_drom.toml",
        )
        sys.exit(1)
    except ConfigError as e:
        console.print_error(
            "Invalid configuration",
            f"Could not load {path}",
            details=[str(e)],
        )
        sys.exit(1)
    except OSError as e:
        console.print_error(
            "Could not read config file",
            f"Could not read {path}",
            details=[str(e)],
            suggestion="Check that the path is a readable file.",
        )
        sys.exit(1)


config_option = click.option(
    "--config",
    "config_path",
    default=DEFAULT_CONFIG_FILE,
    show_default=True,
    envvar="DROM_CONFIG",
    help="Configuration file",
)
commands_option = click.option(
    "--commands",
    "commands_path",
    default=DEFAULT_COMMANDS_FILE,
    show_default=True,
    envvar="DROM_COMMANDS",
    help="Command alias table (optional; missing or malformed means no aliases)",
)
group_option = click.option("--group", default=None, help="Only run the projects of this group")


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show commands, stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """drom: declarative clean/generate/project task runner."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@config_option
@commands_option
@group_option
@click.option("--workers", default=None, type=click.IntRange(min=1), help="Max parallel clean workers (default: one per directory)")
@click.pass_context
def run(ctx, config_path, commands_path, group, workers):
    """Clean, generate, then run projects."""
    console = get_console()
    config = _load_or_exit(config_path)
    commands = load_commands(commands_path)

    engine = Engine(config, commands, clean_workers=workers, console=console)

    try:
        projects = select_projects(config, group)
        console.print_run_started(
            config=config_path,
            generate_count=len(config.generate),
            project_count=len(projects),
            group=group,
        )
        engine.run(group=group)
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except ConfigError as e:
        console.print_error("Invalid invocation", str(e))
        if ctx.obj.get("debug", False):
            console.print_exception(e)
        sys.exit(1)
    except ExecutionError as e:
        console.print_results(engine.results)
        console.print_error(
            "Execution failed",
            f"Run stopped during the {engine.failed_stage} stage",
            details=str(e).splitlines(),
        )
        if ctx.obj.get("debug", False):
            console.print_exception(e)
        sys.exit(1)

    console.print_results(engine.results)


@cli.command()
@config_option
@commands_option
@group_option
@click.pass_context
def plan(ctx, config_path, commands_path, group):
    """Show what `drom run` would execute, without running anything."""
    console = get_console()
    config = _load_or_exit(config_path)
    commands = load_commands(commands_path)

    try:
        rows = build_plan(config, commands, group=group)
    except ConfigError as e:
        console.print_error("Invalid invocation", str(e))
        if ctx.obj.get("debug", False):
            console.print_exception(e)
        sys.exit(1)

    if not rows:
        console.print_info("Nothing to run.")
        return
    for stage, name, detail in rows:
        console.print_plan_row(stage, name, detail)


@cli.command()
@config_option
def check(config_path):
    """Validate the configuration and report dangling references."""
    console = get_console()
    config = _load_or_exit(config_path)

    problems = config.unresolved_references()
    for problem in problems:
        console.print_warning(problem)

    console.print_info(
        f"{config_path}: OK ({len(config.generate)} generate, "
        f"{len(config.projects)} project(s), {len(config.groups)} group(s), "
        f"{len(problems)} warning(s))"
    )


@cli.command()
@config_option
def groups(config_path):
    """List groups and the projects they resolve to."""
    console = get_console()
    config = _load_or_exit(config_path)

    names = config.group_names()
    if not names:
        console.print_info("No groups defined.")
        return
    for name in names:
        members = [p.name for p in config.projects_of(name) or []]
        console.print_info(f"{name}: {', '.join(members) if members else '(no projects)'}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
