"""Display name directory: a one-to-one mapping between names and live sessions."""

from __future__ import annotations

import itertools
import re
from typing import TYPE_CHECKING

from .constants import GUEST_PREFIX, NAME_PATTERN

if TYPE_CHECKING:
    from .session import Session

_NAME_RE = re.compile(NAME_PATTERN)


class RenameError(ValueError):
    """A rename was refused. ``str(exc)`` is the reply shown to the user."""


class InvalidNameFormat(RenameError):
    def __init__(self, name: str) -> None:
        super().__init__("Invalid username. Use 3-20 chars: letters, numbers, _ or -")
        self.name = name


class NameUnchanged(RenameError):
    def __init__(self, name: str) -> None:
        super().__init__("New username must be different from current username")
        self.name = name


class NameConflict(RenameError):
    def __init__(self, name: str) -> None:
        super().__init__("That username is already in use")
        self.name = name


def is_valid_name(name: str) -> bool:
    return bool(_NAME_RE.fullmatch(name))


class NameDirectory:
    """
    Bidirectional name <-> session index.

    Names are compared exactly. Guest names come from a counter that is never
    rewound, so a released ``GuestN`` is not handed out again by allocation.
    Must be used with the service state lock held.
    """

    def __init__(self, prefix: str = GUEST_PREFIX) -> None:
        self.prefix = prefix
        self._counter = itertools.count(1)
        self._by_name: dict[str, Session] = {}

    def allocate_guest_name(self) -> str:
        name = f"{self.prefix}{next(self._counter)}"
        # Someone may have renamed themselves to a future guest name.
        while name in self._by_name:
            name = f"{self.prefix}{next(self._counter)}"
        return name

    def claim(self, name: str, session: Session) -> None:
        holder = self._by_name.get(name)
        if holder is not None and holder is not session:
            raise NameConflict(name)
        self._by_name[name] = session

    def rename(self, old: str, new: str) -> None:
        """Move ``old``'s session to ``new`` or raise a :class:`RenameError`."""
        if not is_valid_name(new):
            raise InvalidNameFormat(new)
        if new == old:
            raise NameUnchanged(new)

        session = self._by_name.get(old)
        if session is None:
            raise KeyError(old)
        holder = self._by_name.get(new)
        if holder is not None and holder is not session:
            raise NameConflict(new)

        del self._by_name[old]
        self._by_name[new] = session

    def release(self, name: str) -> None:
        self._by_name.pop(name, None)

    def lookup(self, name: str) -> Session | None:
        return self._by_name.get(name)

    def is_taken(self, name: str) -> bool:
        return name in self._by_name

    def names(self) -> list[str]:
        return sorted(self._by_name)

    def clear(self) -> None:
        self._by_name.clear()

    def __len__(self) -> int:
        return len(self._by_name)
