"""
Error classes for the todo-file engine.

The core raises these and never prints or exits; the CLI maps each
one to a message and an exit status via ``exit_code``.
"""

from pathlib import Path


class TodoError(Exception):
    """Base exception for all todo store errors."""

    exit_code = 1


class InvalidArgument(TodoError):
    """Raised when a count, rank, mark or item text is unusable."""

    exit_code = 2


class NotFoundError(TodoError):
    """Raised when a rank exceeds the number of items of that class."""

    exit_code = 3

    def __init__(self, rank: int, count: int, item_class: str):
        """
        Initialize not-found error.

        Args:
            rank: Requested 1-based rank
            count: Number of items of the class actually present
            item_class: Name of the class that was searched
        """
        super().__init__(f"No {item_class} item #{rank} (store has {count})")
        self.rank = rank
        self.count = count
        self.item_class = item_class


class LocatorError(TodoError):
    """Raised when no store can be resolved."""

    exit_code = 4


class OpenError(TodoError):
    """Raised when the store cannot be opened, read or written."""

    exit_code = 5

    def __init__(self, path: Path, reason: str):
        super().__init__(f"Cannot access {path}: {reason}")
        self.path = path
        self.reason = reason
