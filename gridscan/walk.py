"""Directory traversal that visits entries in the order the OS reports them."""

from __future__ import annotations

import os
import stat
from typing import Callable, Optional, Union

WalkFn = Callable[[str, Optional[os.stat_result], Optional[OSError]], None]


class SkipDir(Exception):
    """Raised by a walk callback to skip the directory it was called for.

    Raised for a file, it skips the remaining entries of the containing
    directory.
    """


def walk(root: Union[str, os.PathLike], walk_fn: WalkFn) -> None:
    """Walk the tree at ``root``, calling ``walk_fn(path, info, error)`` for each entry.

    ``info`` is the ``lstat`` result of the entry, or ``None`` when it could not
    be read; ``error`` is the ``OSError`` met while reading the entry or the
    directory listing, or ``None``. Entries are not sorted and symbolic links
    are not followed. Raising :class:`SkipDir` from ``walk_fn`` skips a
    directory; any other exception stops the walk and propagates.
    """
    path = os.fspath(root)
    try:
        try:
            info = os.lstat(path)
        except OSError as exc:
            walk_fn(path, None, exc)
        else:
            _walk(path, info, walk_fn)
    except SkipDir:
        pass


def _is_dir(info: os.stat_result) -> bool:
    return stat.S_ISDIR(info.st_mode)


def _walk(path: str, info: os.stat_result, walk_fn: WalkFn) -> None:
    if not _is_dir(info):
        walk_fn(path, info, None)
        return

    try:
        names = os.listdir(path)
        error: Optional[OSError] = None
    except OSError as exc:
        names = []
        error = exc

    walk_fn(path, info, error)
    if error is not None:
        # The callback saw the error and chose to carry on; nothing to descend into.
        return

    for name in names:
        filename = os.path.join(path, name)
        try:
            child = os.lstat(filename)
        except OSError as exc:
            try:
                walk_fn(filename, None, exc)
            except SkipDir:
                pass
            continue
        try:
            _walk(filename, child, walk_fn)
        except SkipDir:
            if not _is_dir(child):
                raise