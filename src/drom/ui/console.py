"""Console output formatting utilities for drom."""

from __future__ import annotations

import sys
import threading
from typing import Optional


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug
        # clean workers print from several threads at once
        self._lock = threading.Lock()

    def _out(self, message: str, err: bool = False) -> None:
        with self._lock:
            print(message, file=sys.stderr if err else sys.stdout, flush=True)

    def print_run_started(
        self,
        config: str,
        generate_count: int,
        project_count: int,
        group: Optional[str] = None,
    ) -> None:
        """Print run start information."""
        self._out("\nRUN STARTED")
        self._out(f"Config: {config}")
        if group:
            self._out(f"Group: {group}")
        self._out(f"Generate tasks: {generate_count}")
        self._out(f"Projects: {project_count}")

    def print_stage(self, stage: str) -> None:
        """Print stage header."""
        self._out(f"\nSTAGE: {stage}")

    def print_clean(self, directory: str) -> None:
        self._out(f"Cleaning directory: {directory}")

    def print_generate(self, name: str) -> None:
        self._out(f"GENERATE: {name}")

    def print_project(self, name: str) -> None:
        self._out(f"PROJECT: {name}")

    def print_command(self, command_line: str) -> None:
        """Print the literal command about to run (debug only)."""
        self.print_debug(f"$ {command_line}")

    def print_failure(
        self,
        name: str,
        reason: str,
        exit_code: Optional[int] = None,
    ) -> None:
        """
        Print failure message.

        Args:
            name: Task, project or directory name
            reason: Failure reason/error message
            exit_code: Optional exit code
        """
        self._out(f"FAILED: {name}", err=True)
        if exit_code is not None:
            self._out(f"Exit code: {exit_code}", err=True)
        if self.debug:
            self._out(f"Error details: {reason}", err=True)
        else:
            error_line = reason.split("\n")[0] if reason else "Unknown error"
            self._out(f"Error: {error_line}", err=True)

    def print_plan_row(self, stage: str, name: str, detail: str) -> None:
        self._out(f"  [{stage}] {name}: {detail}")

    def print_results(self, results: dict[str, str]) -> None:
        """Print final results summary."""
        self._out("\n" + "=" * 40)
        self._out("RESULTS")
        self._out("=" * 40)
        if not results:
            self._out("  (nothing to run)")
        for item, status in results.items():
            status_display = status.upper() if status != "ok" else "SUCCESS"
            self._out(f"  {item}: {status_display}")

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        self._out(f"\nERROR: {title}", err=True)
        self._out(f"{message}", err=True)
        if details:
            for detail in details:
                self._out(f"  {detail}", err=True)
        if suggestion:
            self._out(f"\n{suggestion}", err=True)

    def print_warning(self, message: str) -> None:
        self._out(f"WARNING: {message}", err=True)

    def print_exception(self, exc: Exception) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exc()
        else:
            self._out(f"Error: {exc}", err=True)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        self._out(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            self._out(f"[DEBUG] {message}", err=True)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
