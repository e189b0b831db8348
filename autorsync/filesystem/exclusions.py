"""Path exclusion rules for a mapping's source tree."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


def normalize_exclusions(root: str, exclusions: Iterable[str]) -> tuple[str, ...]:
    """Turn each exclusion into an absolute, normalized path under ``root``.

    An exclusion already prefixed by ``root`` is used as is; anything else is
    joined onto ``root``. Normalizing drops trailing separators, so ``build/``
    becomes ``<root>/build``. Blank exclusions are skipped: joined onto the root
    they would exclude the entire tree.
    """
    normalized: list[str] = []
    for exclusion in exclusions:
        if not exclusion.strip():
            continue
        if exclusion.startswith(root):
            normalized.append(os.path.normpath(exclusion))
        else:
            normalized.append(os.path.normpath(os.path.join(root, exclusion)))
    return tuple(normalized)


class ExclusionMatcher:
    """Decide whether a path falls under a mapping's exclusions.

    Matching is a plain string-prefix test against the normalized exclusions,
    not a glob language. A consequence kept for compatibility with existing
    config files: exclusion ``log`` also excludes ``logfile.txt``, and ``b/``
    also excludes ``bb/``.
    """

    def __init__(self, root: str, exclusions: Iterable[str]) -> None:
        self.root = root
        self.exclusions = normalize_exclusions(root, exclusions)

    def is_excluded(self, path: str) -> bool:
        """Return True if ``path`` starts with any normalized exclusion."""
        return any(path.startswith(exclusion) for exclusion in self.exclusions)

    def __repr__(self) -> str:
        return f"ExclusionMatcher(root={self.root!r}, exclusions={self.exclusions!r})"
