"""Ordered environment variables and the mutable state of a running shell."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional


class Environment:
    """An ordered list of shell variables.

    A variable may exist without a value (``None``). That happens when it
    was read from a string with no ``=``.
    """

    def __init__(self) -> None:
        self._entries: list[list] = []

    @classmethod
    def from_strings(cls, entries: Iterable[str]) -> "Environment":
        """Build an environment from ``NAME=value`` strings, keeping their order."""
        env = cls()
        for entry in entries:
            name, sep, value = entry.partition("=")
            env._entries.append([name, value if sep else None])
        return env

    def _find(self, name: str) -> Optional[list]:
        return next((entry for entry in self._entries if entry[0] == name), None)

    def get(self, name: str) -> Optional[str]:
        """Return the value of ``name``, or ``None`` if it is unset or has no value."""
        entry = self._find(name)
        return entry[1] if entry is not None else None

    def contains(self, name: str) -> bool:
        """Tell whether a variable called ``name`` exists."""
        return self._find(name) is not None

    def set(self, name: str, value: Optional[str]) -> None:
        """Replace the value of ``name``, or add it at the front if it is new."""
        entry = self._find(name)
        if entry is not None:
            entry[1] = value
        else:
            self._entries.insert(0, [name, value])

    def append(self, name: str, value: str) -> None:
        """Append ``value`` to an existing variable, or create it.

        A variable that exists without a value keeps having none.
        """
        entry = self._find(name)
        if entry is None:
            self.set(name, value)
        elif entry[1] is not None:
            entry[1] = entry[1] + value

    def declare(self, name: str) -> None:
        """Create ``name`` with an empty value unless it already exists."""
        if not self.contains(name):
            self.set(name, "")

    def update(self, name: str, value: Optional[str]) -> None:
        """Change the value of ``name`` only if the variable already exists."""
        entry = self._find(name)
        if entry is not None:
            entry[1] = value

    def unset(self, name: str) -> None:
        """Remove ``name`` if present."""
        self._entries = [entry for entry in self._entries if entry[0] != name]

    def sort(self) -> None:
        """Sort the variables by name, in place."""
        self._entries.sort(key=lambda entry: entry[0])

    def items(self) -> Iterator[tuple[str, Optional[str]]]:
        """Yield ``(name, value)`` pairs in order."""
        for name, value in self._entries:
            yield name, value

    def to_strings(self) -> list[str]:
        """Render ``NAME=value`` strings for variables that have a value."""
        return [f"{name}={value}" for name, value in self._entries if value is not None]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.contains(name)

    def __iter__(self) -> Iterator[str]:
        return (entry[0] for entry in self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Environment({list(self.items())!r})"


@dataclass
class ShellState:
    """Everything that persists between command lines."""

    env: Environment = field(default_factory=Environment)
    exit_status: int = 0
    pid: int = 0