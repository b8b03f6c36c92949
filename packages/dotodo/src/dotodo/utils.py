"""Utility functions and classes for the dotodo package.

This module contains:
- Data classes: ItemClass, Item
- Constants: STORE_NAME, TODO_MARK, DONE_MARK
- Line classification helpers
- Store location (upward directory search with home fallback)
- Strict count parsing for the CLI
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from pathlib import Path
from typing import NamedTuple, Optional

from dotodo.errors import InvalidArgument, LocatorError

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# File name searched upward from the working directory
STORE_NAME = ".todo"

TODO_MARK = " "
DONE_MARK = "X"


class ItemClass(Enum):
    """Classification of a single store line."""

    TODO = "todo"
    DONE = "done"
    FOREIGN = "foreign"


MARKS: dict[ItemClass, str] = {
    ItemClass.TODO: TODO_MARK,
    ItemClass.DONE: DONE_MARK,
}


class Item(NamedTuple):
    """A ranked item line as read from a store.

    The rank is only meaningful for the read it came from; any rewrite
    of the store recomputes ranks from scratch.
    """

    rank: int
    line: str

    @property
    def item_class(self) -> ItemClass:
        return classify(self.line)

    @property
    def done(self) -> bool:
        return self.item_class is ItemClass.DONE

    @property
    def text(self) -> str:
        """Item text without the mark prefix and line terminator."""
        return self.line[3:].rstrip("\r\n").removeprefix(" ")

    def __str__(self) -> str:
        line = self.line.rstrip("\r\n")
        return f"{self.rank}. {line}"


# =============================================================================
# Line Classification
# =============================================================================


def classify(line: str) -> ItemClass:
    """Classify a raw store line.

    Only the first three characters matter: ``[ ]`` is a todo item,
    ``[X]`` a done item, anything else (including lines shorter than
    three characters) is a foreign line.
    """
    prefix = line[:3]
    if prefix == f"[{TODO_MARK}]":
        return ItemClass.TODO
    if prefix == f"[{DONE_MARK}]":
        return ItemClass.DONE
    return ItemClass.FOREIGN


def mark_for(item_class: ItemClass) -> str:
    """Get the mark character for an item class."""
    try:
        return MARKS[item_class]
    except KeyError:
        raise InvalidArgument(f"Foreign lines have no mark: {item_class}") from None


def set_mark(line: str, mark: str) -> str:
    """Return line with its mark character replaced, leaving the rest untouched."""
    if mark not in MARKS.values():
        raise InvalidArgument(f"Invalid mark: {mark!r}")
    if classify(line) is ItemClass.FOREIGN:
        raise InvalidArgument(f"Not an item line: {line!r}")
    return line[0] + mark + line[2:]


# =============================================================================
# Argument Parsing
# =============================================================================


def parse_count(token: Optional[str]) -> int:
    """Parse a count argument strictly.

    Returns 0 (treated as absent by callers) when the token is missing,
    empty or contains any non-digit character. ``"12abc"`` is 0, not 12.
    """
    if not token:
        return 0
    # str.isdigit() accepts superscripts and other non-ASCII digits
    if not (token.isascii() and token.isdigit()):
        return 0
    return int(token)


def validate_count(value: Optional[int], what: str = "count") -> None:
    """Reject non-positive or non-integer counts before any file is touched."""
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidArgument(f"{what} must be a positive integer, got {value!r}")


# =============================================================================
# Store Location
# =============================================================================


def home_store(name: str = STORE_NAME, strict: bool = True) -> Path:
    """Get the fallback store path in the user's home directory.

    With strict=False an undeterminable home does not raise; the path is
    derived from ``os.path.expanduser("~")`` as-is, which appenders can
    still create.
    """
    try:
        home = Path.home()
    except (RuntimeError, KeyError) as e:
        if strict:
            raise LocatorError(f"Cannot determine home directory: {e}") from e
        home = Path(os.path.expanduser("~"))
        logger.debug("Home directory unknown, appending under %s", home)
    return home / name


def find_store(
    start: Optional[Path] = None, name: str = STORE_NAME, for_append: bool = False
) -> Path:
    """Find the store by looking for a ``name`` file in start and its ancestors.

    Falls back to ``~/<name>`` when no ancestor has one. The fallback is
    not checked for existence: readers report a missing store when they
    open it, appenders create it. With for_append=True an unknown home
    directory still yields a destination instead of LocatorError.
    """
    if start is None:
        try:
            start = Path.cwd()
        except OSError as e:
            raise LocatorError(f"Cannot determine current directory: {e}") from e

    current = start.resolve()
    while True:
        candidate = current / name
        logger.debug("Checking %s", candidate)
        if candidate.is_file():
            logger.debug("Found store at %s", candidate)
            return candidate
        if current == current.parent:
            break
        current = current.parent

    fallback = home_store(name, strict=not for_append)
    logger.debug("No store above %s, using %s", start, fallback)
    return fallback
