"""
Directory walking shared by every source.

Sources keep their raw feed under <cache_dir>/vuln-list/<source>/ and parse
one file at a time through a callback.
"""
import os
from pathlib import Path
from typing import BinaryIO, Callable, Iterable, Iterator

from .exceptions import WalkError

VULN_LIST_DIR = "vuln-list"


def file_walk(
    root_dir: Path,
    target_files: Iterable[str],
    walk_fn: Callable[[BinaryIO, str], None],
    relative_to: Path = None,
):
    """
    Call walk_fn for every matching file below root_dir, in sorted order.

    Args:
        root_dir: Directory to walk recursively
        target_files: File suffixes to visit (e.g. [".json"]); empty visits all
        walk_fn: Called with the open file and its path relative to relative_to
        relative_to: Base for the paths handed to walk_fn (default: root_dir)

    Raises:
        WalkError: If root_dir or a file in it cannot be read. Errors raised
            by walk_fn propagate unchanged.
    """
    root_dir = Path(root_dir)
    base = Path(relative_to) if relative_to is not None else root_dir
    suffixes = tuple(target_files)

    try:
        os.lstat(root_dir)
        paths = sorted(_walk_files(root_dir))
    except OSError as e:
        raise WalkError(f"error in file walk: {e}") from e

    for path in paths:
        if suffixes and not path.name.endswith(suffixes):
            continue
        try:
            f = open(path, "rb")
        except OSError as e:
            raise WalkError(f"error in file walk: {e}") from e
        with f:
            walk_fn(f, str(path.relative_to(base)))


def _walk_files(directory: Path) -> Iterator[Path]:
    # os.scandir raises on unreadable directories instead of skipping them
    with os.scandir(directory) as it:
        entries = list(it)
    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            yield from _walk_files(Path(entry.path))
        elif entry.is_file():
            yield Path(entry.path)
