"""Property-based tests for exclusion matching."""

from __future__ import annotations

import os
import string

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from autorsync.filesystem.exclusions import ExclusionMatcher

PROPERTY_SETTINGS = settings(
    max_examples=200,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)

ROOT = "/root/src"

_SEGMENT = st.text(alphabet=string.ascii_lowercase + string.digits + "._-", min_size=1, max_size=8)
_RELATIVE = st.lists(_SEGMENT, min_size=1, max_size=4).map(lambda parts: "/".join(parts)).filter(
    lambda p: not any(part in {".", ".."} for part in p.split("/"))
)


@PROPERTY_SETTINGS
@given(exclusions=st.lists(_RELATIVE, max_size=5), candidate=_RELATIVE)
def test_excluded_iff_some_normalized_exclusion_is_prefix(
    exclusions: list[str], candidate: str
) -> None:
    matcher = ExclusionMatcher(ROOT, exclusions)
    path = os.path.join(ROOT, candidate)
    expected = any(path.startswith(os.path.join(ROOT, e)) for e in exclusions)
    assert matcher.is_excluded(path) is expected


@PROPERTY_SETTINGS
@given(exclusion=_RELATIVE, tail=_RELATIVE)
def test_everything_below_an_exclusion_is_excluded(exclusion: str, tail: str) -> None:
    matcher = ExclusionMatcher(ROOT, [exclusion])
    assert matcher.is_excluded(os.path.join(ROOT, exclusion, tail))


@PROPERTY_SETTINGS
@given(exclusion=_RELATIVE)
def test_trailing_slash_is_irrelevant(exclusion: str) -> None:
    with_slash = ExclusionMatcher(ROOT, [exclusion + "/"])
    without = ExclusionMatcher(ROOT, [exclusion])
    assert with_slash.exclusions == without.exclusions
