# executor.py
# Host capabilities used by the engine. Everything that spawns a process or
# touches the filesystem goes through these two classes so the engine can be
# driven by fakes in tests.
from __future__ import annotations

import os
import shutil
import subprocess
from typing import List, Optional


def shell_argv(command_line: str) -> List[str]:
    """argv that hands `command_line` to the host shell as a single argument."""
    if os.name == "nt":
        return ["cmd", "/C", command_line]
    return ["sh", "-c", command_line]


class CommandExecutor:
    """Runs a literal command line and reports how it exited."""

    def run(self, command_line: str) -> Optional[int]:
        """
        Run `command_line` to completion.

        Returns:
            The exit code, or None when the child did not exit normally
            (e.g. killed by a signal).

        Raises:
            OSError: If the process could not be spawned.
        """
        raise NotImplementedError


class ShellExecutor(CommandExecutor):
    """Spawns through `sh -c` (or `cmd /C` on Windows). stdio is inherited."""

    def run(self, command_line: str) -> Optional[int]:
        proc = subprocess.run(shell_argv(command_line))
        if proc.returncode < 0:
            return None
        return proc.returncode


class DirectoryRemover:
    """Checks for and recursively removes directories."""

    def exists(self, path: str) -> bool:
        raise NotImplementedError

    def remove(self, path: str) -> None:
        raise NotImplementedError


class FilesystemRemover(DirectoryRemover):
    def exists(self, path: str) -> bool:
        return os.path.lexists(path)

    def remove(self, path: str) -> None:
        if os.path.islink(path):
            # the link itself is removed, never its target (dangling links too)
            os.unlink(path)
            return
        try:
            shutil.rmtree(path)
        except FileNotFoundError:
            # another worker got to part of the tree first; clear what is left
            if os.path.lexists(path):
                shutil.rmtree(path)
