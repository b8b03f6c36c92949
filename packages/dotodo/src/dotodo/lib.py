"""Core business logic for the dotodo package.

This module contains the todo-file engine that sits between
the CLI layer (cli.py) and utility functions (utils.py).

Architecture:
- cli.py: Click commands, output formatting, user interaction
- lib.py: Reading, toggling and appending items in a store file
- utils.py: Line classification, store location, argument helpers

Every function takes the store path explicitly and raises
``dotodo.errors`` exceptions instead of printing.

Limitations:
    No file locking is done. Two invocations toggling the same store at
    the same time race on the read-modify-write cycle and the last
    writer wins. Rewrites are atomic (temp file + rename), so a store is
    never left half-written, but one of the two updates can be lost.
"""

import itertools
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import IO, Iterable, Iterator, List, Optional

from dotodo.errors import InvalidArgument, NotFoundError, OpenError
from dotodo.utils import (
    DONE_MARK,
    TODO_MARK,
    Item,
    ItemClass,
    classify,
    mark_for,
    set_mark,
    validate_count,
)

logger = logging.getLogger(__name__)

ENCODING = "utf-8"
# Undecodable bytes survive a read/rewrite cycle unchanged
ERRORS = "surrogateescape"


def _open_store(store: Path, mode: str) -> IO[str]:
    # newline="" keeps line endings exactly as stored
    try:
        return open(store, mode, encoding=ENCODING, errors=ERRORS, newline="")
    except OSError as e:
        raise OpenError(store, e.strerror or str(e)) from e


def _read_lines(store: Path) -> List[str]:
    with _open_store(store, "r") as f:
        try:
            return f.readlines()
        except OSError as e:
            raise OpenError(store, e.strerror or str(e)) from e


def _terminated(line: str) -> str:
    return line if line.endswith("\n") else line + "\n"


# =============================================================================
# Item Reader
# =============================================================================


def list_items(
    store: Path, item_class: ItemClass, limit: Optional[int] = None
) -> Iterator[Item]:
    """List items of one class in file order.

    Args:
        store: Path to the store file
        item_class: ItemClass.TODO or ItemClass.DONE
        limit: Maximum number of items to yield (None for all)

    Returns:
        Lazy iterator of Item(rank, line), ranks starting at 1 within the
        class. The store is opened on first iteration, so OpenError
        surfaces there; argument errors are raised immediately.
    """
    if limit is not None:
        validate_count(limit, "limit")
    mark_for(item_class)
    return _iter_items(store, item_class, limit)


def _iter_items(
    store: Path, item_class: ItemClass, limit: Optional[int]
) -> Iterator[Item]:
    rank = 0
    with _open_store(store, "r") as f:
        for line in f:
            if classify(line) is not item_class:
                continue
            rank += 1
            yield Item(rank, line)
            if limit is not None and rank >= limit:
                return


def list_all(store: Path, limit: Optional[int] = None) -> Iterator[Item]:
    """List todo items then done items, each bounded by limit on its own."""
    return itertools.chain(
        list_items(store, ItemClass.TODO, limit),
        list_items(store, ItemClass.DONE, limit),
    )


# =============================================================================
# Mutator
# =============================================================================


def toggle(store: Path, item_class: ItemClass, mark: str, rank: int) -> Item:
    """Set the mark of the rank-th item of item_class and relocate it.

    An item marked done moves to the top of the file, an item marked
    todo moves to the bottom. Every other line keeps its relative order.

    Args:
        store: Path to the store file
        item_class: Class the rank is counted in
        mark: New mark character (TODO_MARK or DONE_MARK)
        rank: 1-based rank of the item within item_class

    Returns:
        The rewritten item, ranked within its new class in the new file.

    Raises:
        InvalidArgument: rank is not positive, mark or class is invalid
        NotFoundError: fewer than rank items of item_class exist; the
            store is left untouched
        OpenError: the store cannot be read or replaced
    """
    validate_count(rank, "rank")
    if mark not in (TODO_MARK, DONE_MARK):
        raise InvalidArgument(f"Invalid mark: {mark!r}")
    mark_for(item_class)

    lines = _read_lines(store)

    target: Optional[str] = None
    retained: List[str] = []
    seen = 0
    for line in lines:
        if classify(line) is item_class:
            seen += 1
            if seen == rank:
                target = set_mark(_terminated(line), mark)
                continue
        retained.append(_terminated(line))

    if target is None:
        raise NotFoundError(rank, seen, item_class.value)

    if mark == DONE_MARK:
        new_lines = [target] + retained
        position = 0
    else:
        new_lines = retained + [target]
        position = len(new_lines) - 1

    _replace(store, new_lines)

    new_class = classify(target)
    new_rank = sum(1 for line in new_lines[: position + 1] if classify(line) is new_class)
    logger.debug(
        "Moved %s #%d to %s #%d in %s",
        item_class.value,
        rank,
        new_class.value,
        new_rank,
        store,
    )
    return Item(new_rank, target)


def mark_done(store: Path, rank: int) -> Item:
    """Mark the rank-th todo item done."""
    return toggle(store, ItemClass.TODO, DONE_MARK, rank)


def mark_todo(store: Path, rank: int) -> Item:
    """Reopen the rank-th done item."""
    return toggle(store, ItemClass.DONE, TODO_MARK, rank)


def _replace(store: Path, lines: List[str]) -> None:
    """Write lines to a temp file next to the store, then rename it over the store."""
    # Follow symlinks so a linked store is updated rather than replaced
    real = Path(os.path.realpath(store))
    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f"{real.name}.", suffix=".tmp", dir=real.parent
        )
    except OSError as e:
        raise OpenError(store, e.strerror or str(e)) from e

    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding=ENCODING, errors=ERRORS, newline="") as f:
            f.writelines(lines)
            f.flush()
            os.fsync(f.fileno())
        shutil.copymode(real, tmp_path)
        os.replace(tmp_path, real)
    except OSError as e:
        tmp_path.unlink(missing_ok=True)
        raise OpenError(store, e.strerror or str(e)) from e


# =============================================================================
# Ingest
# =============================================================================


def _check_text(text: str) -> None:
    if "\n" in text or "\r" in text:
        raise InvalidArgument(f"Item text must be a single line: {text!r}")


def _missing_final_newline(store: Path) -> bool:
    try:
        with open(store, "rb") as f:
            f.seek(0, os.SEEK_END)
            if f.tell() == 0:
                return False
            f.seek(-1, os.SEEK_END)
            return f.read(1) != b"\n"
    except FileNotFoundError:
        return False
    except OSError as e:
        raise OpenError(store, e.strerror or str(e)) from e


def append_item(store: Path, text: str) -> None:
    """Append a new todo item to the end of the store, creating it if needed."""
    _check_text(text)
    needs_newline = _missing_final_newline(store)
    with _open_store(store, "a") as f:
        try:
            if needs_newline:
                f.write("\n")
            f.write(f"[{TODO_MARK}] {text}\n")
        except OSError as e:
            raise OpenError(store, e.strerror or str(e)) from e
    logger.debug("Appended %r to %s", text, store)


def append_items(store: Path, texts: Iterable[str]) -> int:
    """Append one item per text. All texts are checked before any is written.

    Returns:
        Number of items appended
    """
    texts = list(texts)
    for text in texts:
        _check_text(text)
    for text in texts:
        append_item(store, text)
    return len(texts)


def append_from_stream(store: Path, lines: Iterable[str]) -> int:
    """Append one item per non-empty line read from lines until exhausted.

    A single trailing newline is stripped from each line; lines that are
    empty afterwards are dropped.

    Returns:
        Number of items appended
    """
    count = 0
    for raw in lines:
        text = raw[:-1] if raw.endswith("\n") else raw
        if text.endswith("\r"):
            text = text[:-1]
        if not text:
            continue
        append_item(store, text)
        count += 1
    logger.debug("Appended %d items from stream to %s", count, store)
    return count
