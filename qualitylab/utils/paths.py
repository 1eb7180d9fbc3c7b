"""Path helpers: glob matching, bounded tree walks, scan focus."""

from __future__ import annotations

import os
import re
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

SKIP_DIRS = frozenset({".git", "node_modules", "dist", "build", ".next", ".cache"})
_WILDCARDS = ("*", "?", "[")


@lru_cache(maxsize=128)
def glob_to_regex(pattern: str) -> re.Pattern:
    """Translate a glob where ``**`` spans directories and ``*`` does not."""
    escaped = re.sub(r"([.+^${}()|\\])", r"\\\1", pattern)
    escaped = escaped.replace("**", "\0").replace("*", "[^/]*").replace("\0", ".*")
    return re.compile(f"^{escaped}$")


def to_posix(relative: str) -> str:
    return relative.replace(os.sep, "/")


def matches_globs(relative_path: str, patterns: Sequence[str]) -> bool:
    posix = to_posix(relative_path)
    return any(glob_to_regex(pattern).match(posix) for pattern in patterns)


def relative_to(base_dir: str, path: str) -> str:
    """``path`` relative to ``base_dir`` in POSIX form, or unchanged if outside it."""
    try:
        return Path(path).resolve().relative_to(Path(base_dir).resolve()).as_posix()
    except (OSError, ValueError):
        return to_posix(path)


def walk_files(
    base_dir: str,
    max_files: int = 1000,
    patterns: Optional[Sequence[str]] = None,
) -> List[str]:
    """Collect up to ``max_files`` file paths below ``base_dir``.

    Directories in ``SKIP_DIRS`` are not entered; entries are visited in
    sorted order so the result is stable across platforms.
    """
    collected: List[str] = []
    for root, dirs, files in os.walk(base_dir, onerror=lambda _err: None):
        dirs[:] = sorted(d for d in dirs if d not in SKIP_DIRS)
        for name in sorted(files):
            if len(collected) >= max_files:
                return collected
            full = os.path.join(root, name)
            rel = os.path.relpath(full, base_dir)
            if patterns and not matches_globs(rel, patterns):
                continue
            collected.append(full)
    return collected


def derive_focused_cwd(base_dir: str, patterns: Sequence[str]) -> Optional[str]:
    """Directory prefix of the first glob, when it names an existing directory."""
    if not patterns:
        return None
    first = patterns[0]
    indexes = [first.index(ch) for ch in _WILDCARDS if ch in first]
    if not indexes or min(indexes) <= 0:
        return None
    prefix = first[: min(indexes)].rstrip("/")
    if not prefix:
        return None
    candidate = Path(base_dir, prefix).resolve()
    return str(candidate) if candidate.is_dir() else None


def rebase_patterns(patterns: Sequence[str], prefix: str) -> List[str]:
    """Rewrite repo-relative globs to be relative to the ``prefix`` directory.

    ``apps/api/**`` under prefix ``apps/api`` becomes ``**``. Globs outside the
    prefix are kept unchanged.
    """
    prefix = to_posix(prefix).strip("/")
    if not prefix or prefix == ".":
        return list(patterns)
    rebased = []
    for pattern in patterns:
        posix = to_posix(pattern)
        if posix == prefix:
            rebased.append("**")
        elif posix.startswith(prefix + "/"):
            rebased.append(posix[len(prefix) + 1:] or "**")
        else:
            rebased.append(pattern)
    return rebased


def command_targets(patterns: Optional[Sequence[str]]) -> Tuple[str, ...]:
    """CLI targets for tools run inside the scan dir; a bare ``**`` means ``.``."""
    targets = tuple("." if pattern in ("**", "**/*") else pattern for pattern in patterns or ())
    return tuple(dict.fromkeys(targets)) or (".",)
