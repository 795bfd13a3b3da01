from __future__ import annotations

import threading
from typing import Dict, List, Optional

import pytest

from drom.executor import CommandExecutor, DirectoryRemover
from drom.ui.console import Console, set_console


class FakeExecutor(CommandExecutor):
    """Records command lines; exit codes default to 0."""

    def __init__(self, codes: Optional[Dict[str, Optional[int]]] = None, unspawnable: tuple[str, ...] = ()):
        self.codes = codes or {}
        self.unspawnable = set(unspawnable)
        self.calls: List[str] = []

    def run(self, command_line: str) -> Optional[int]:
        self.calls.append(command_line)
        if command_line in self.unspawnable:
            raise FileNotFoundError(2, "No such file or directory", "sh")
        return self.codes.get(command_line, 0)


class FakeRemover(DirectoryRemover):
    def __init__(self, present=(), errors: Optional[Dict[str, BaseException]] = None):
        self.present = set(present)
        self.errors = errors or {}
        self.removed: List[str] = []
        self._lock = threading.Lock()

    def exists(self, path: str) -> bool:
        with self._lock:
            return path in self.present

    def remove(self, path: str) -> None:
        if path in self.errors:
            raise self.errors[path]
        with self._lock:
            self.present.discard(path)
            self.removed.append(path)


@pytest.fixture(autouse=True)
def quiet_console() -> Console:
    console = Console(debug=False)
    set_console(console)
    return console


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def remover() -> FakeRemover:
    return FakeRemover()
