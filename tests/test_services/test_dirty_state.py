"""Tests for the shared dirty-flag container."""

from __future__ import annotations

import asyncio

import pytest

from autorsync.services.dirty_state import DirtyState
from tests._fakes import make_mapping


class TestDirtyState:
    async def test_all_flags_start_clean(self) -> None:
        a, b = make_mapping("/a"), make_mapping("/b")
        state = DirtyState([a, b])
        assert await state.snapshot() == {a: False, b: False}

    async def test_mark_dirty_sets_only_that_flag(self) -> None:
        a, b = make_mapping("/a"), make_mapping("/b")
        state = DirtyState([a, b])
        await state.mark_dirty(b)
        assert await state.is_dirty(b)
        assert not await state.is_dirty(a)

    async def test_identical_mappings_are_distinct_entries(self) -> None:
        first, second = make_mapping("/src"), make_mapping("/src")
        state = DirtyState([first, second])
        await state.mark_dirty(second)
        assert await state.snapshot() == {first: False, second: True}

    async def test_unknown_mapping_rejected(self) -> None:
        state = DirtyState([make_mapping("/a")])
        with pytest.raises(KeyError):
            await state.mark_dirty(make_mapping("/other"))
        assert len(await state.snapshot()) == 1

    async def test_mappings_keep_configuration_order(self) -> None:
        mappings = [make_mapping(f"/m{i}") for i in range(4)]
        state = DirtyState(mappings)
        assert state.mappings == tuple(mappings)

    async def test_dispatch_pass_lists_and_clears(self) -> None:
        a, b, c = make_mapping("/a"), make_mapping("/b"), make_mapping("/c")
        state = DirtyState([a, b, c])
        await state.mark_dirty(c)
        await state.mark_dirty(a)
        async with state.dispatch_pass() as dispatch:
            assert dispatch.dirty_mappings() == [a, c]
            dispatch.clear(a)
        assert await state.snapshot() == {a: False, b: False, c: True}

    async def test_mark_waits_for_dispatch_pass(self) -> None:
        a = make_mapping("/a")
        state = DirtyState([a])
        await state.mark_dirty(a)
        async with state.dispatch_pass() as dispatch:
            marker = asyncio.create_task(state.mark_dirty(a))
            await asyncio.sleep(0.01)
            assert not marker.done()
            dispatch.clear(a)
        await marker
        assert await state.is_dirty(a)
