"""
Unit tests for the InMemorySessionStore implementation.

Tests cover:
- Session creation and lookup
- Append-only event log semantics
- Backend context handle bookkeeping
- Completion flag
- Idle session sweeping
- Concurrent access to the session map
"""

import asyncio
from datetime import timedelta

import pytest

from cartsource.exceptions import SessionNotFoundError
from cartsource.stores import ExperienceSession, InMemorySessionStore
from cartsource.testing import ManualClock
from tests.fixtures import added, removed


class TestCreateSession:
    @pytest.mark.asyncio
    async def test_new_session_is_empty(self, store: InMemorySessionStore) -> None:
        session_id = await store.create_session()
        session = await store.get_session(session_id)

        assert session_id.startswith("exp_")
        assert session.events == ()
        assert session.backend_context_ref is None
        assert not session.has_backend_context
        assert session.completed is False

    @pytest.mark.asyncio
    async def test_session_ids_are_unique(self, store: InMemorySessionStore) -> None:
        ids = {await store.create_session() for _ in range(50)}
        assert len(ids) == 50
        assert await store.session_count() == 50

    @pytest.mark.asyncio
    async def test_concurrent_creates_lose_nothing(self, store: InMemorySessionStore) -> None:
        ids = await asyncio.gather(*(store.create_session() for _ in range(100)))
        assert len(set(ids)) == 100
        assert await store.session_count() == 100


class TestGetSession:
    @pytest.mark.asyncio
    async def test_unknown_session_raises(self, store: InMemorySessionStore) -> None:
        with pytest.raises(SessionNotFoundError) as exc_info:
            await store.get_session("exp_missing")
        assert exc_info.value.session_id == "exp_missing"

    @pytest.mark.asyncio
    async def test_read_refreshes_activity(
        self, store: InMemorySessionStore, clock: ManualClock
    ) -> None:
        session_id = await store.create_session()
        clock.advance(minutes=10)

        session = await store.get_session(session_id)
        assert session.last_activity_at == clock()

    @pytest.mark.asyncio
    async def test_snapshot_is_detached(self, store: InMemorySessionStore) -> None:
        session_id = await store.create_session()
        before = await store.get_session(session_id)
        await store.append_event(session_id, added("sim"))

        assert isinstance(before, ExperienceSession)
        assert before.event_count == 0


class TestEventLog:
    @pytest.mark.asyncio
    async def test_events_kept_in_append_order(self, store: InMemorySessionStore) -> None:
        session_id = await store.create_session()
        first, second = added("a", 2), removed("a", 1)
        await store.append_event(session_id, first)
        await store.append_event(session_id, second)

        assert await store.get_events(session_id) == [first, second]

    @pytest.mark.asyncio
    async def test_get_events_returns_copy(self, store: InMemorySessionStore) -> None:
        session_id = await store.create_session()
        await store.append_event(session_id, added("a"))

        events = await store.get_events(session_id)
        events.clear()
        assert len(await store.get_events(session_id)) == 1

    @pytest.mark.asyncio
    async def test_append_to_unknown_session_raises(self, store: InMemorySessionStore) -> None:
        with pytest.raises(SessionNotFoundError):
            await store.append_event("exp_missing", added("a"))

    @pytest.mark.asyncio
    async def test_append_refreshes_activity(
        self, store: InMemorySessionStore, clock: ManualClock
    ) -> None:
        session_id = await store.create_session()
        clock.advance(hours=1)
        await store.append_event(session_id, added("a"))

        assert (await store.get_session(session_id)).last_activity_at == clock()

    @pytest.mark.asyncio
    async def test_project_folds_log(self, store: InMemorySessionStore) -> None:
        session_id = await store.create_session()
        await store.append_event(session_id, added("a", 3, unit_price=100))
        await store.append_event(session_id, removed("a", 1))

        cart = store.project(session_id, await store.get_events(session_id))
        assert cart.get_item("a").quantity == 2  # type: ignore[union-attr]
        assert cart.subtotal == 200
        assert cart.tax == 20


class TestBackendContextRef:
    @pytest.mark.asyncio
    async def test_set_and_clear_handle(self, store: InMemorySessionStore) -> None:
        session_id = await store.create_session()

        await store.set_backend_context_ref(session_id, "ctx_1")
        assert (await store.get_session(session_id)).backend_context_ref == "ctx_1"

        await store.set_backend_context_ref(session_id, None)
        assert (await store.get_session(session_id)).backend_context_ref is None

    @pytest.mark.asyncio
    async def test_handle_change_keeps_log(self, store: InMemorySessionStore) -> None:
        session_id = await store.create_session()
        await store.append_event(session_id, added("a"))
        await store.set_backend_context_ref(session_id, "ctx_2")

        assert len(await store.get_events(session_id)) == 1

    @pytest.mark.asyncio
    async def test_unknown_session_raises(self, store: InMemorySessionStore) -> None:
        with pytest.raises(SessionNotFoundError):
            await store.set_backend_context_ref("exp_missing", "ctx_1")


class TestMarkCompleted:
    @pytest.mark.asyncio
    async def test_completed_flag_is_set(self, store: InMemorySessionStore) -> None:
        session_id = await store.create_session()
        await store.mark_completed(session_id)
        assert (await store.get_session(session_id)).completed is True

    @pytest.mark.asyncio
    async def test_completed_is_terminal(self, store: InMemorySessionStore) -> None:
        session_id = await store.create_session()
        await store.mark_completed(session_id)
        await store.mark_completed(session_id)
        await store.set_backend_context_ref(session_id, None)
        assert (await store.get_session(session_id)).completed is True


class TestSweep:
    @pytest.mark.asyncio
    async def test_removes_only_idle_sessions(
        self, store: InMemorySessionStore, clock: ManualClock
    ) -> None:
        stale = await store.create_session()
        clock.advance(hours=2)
        fresh = await store.create_session()

        removed_ids = await store.sweep_expired_sessions(timedelta(hours=1), clock())

        assert removed_ids == [stale]
        assert not await store.has_session(stale)
        assert await store.has_session(fresh)

    @pytest.mark.asyncio
    async def test_threshold_is_strict(
        self, store: InMemorySessionStore, clock: ManualClock
    ) -> None:
        session_id = await store.create_session()
        clock.advance(hours=1)

        assert await store.sweep_expired_sessions(timedelta(hours=1), clock()) == []
        assert await store.has_session(session_id)

    @pytest.mark.asyncio
    async def test_activity_postpones_sweep(
        self, store: InMemorySessionStore, clock: ManualClock
    ) -> None:
        session_id = await store.create_session()
        clock.advance(minutes=50)
        await store.get_session(session_id)
        clock.advance(minutes=50)

        assert await store.sweep_expired_sessions(timedelta(hours=1), clock()) == []

    @pytest.mark.asyncio
    async def test_swept_session_is_not_found(
        self, store: InMemorySessionStore, clock: ManualClock
    ) -> None:
        session_id = await store.create_session()
        clock.advance(days=2)
        await store.sweep_expired_sessions(timedelta(hours=24), clock())

        with pytest.raises(SessionNotFoundError):
            await store.get_session(session_id)


class TestHelpers:
    @pytest.mark.asyncio
    async def test_has_session_does_not_touch_activity(
        self, store: InMemorySessionStore, clock: ManualClock
    ) -> None:
        session_id = await store.create_session()
        clock.advance(minutes=5)

        assert await store.has_session(session_id)
        swept = await store.sweep_expired_sessions(timedelta(minutes=4), clock())
        assert swept == [session_id]

    @pytest.mark.asyncio
    async def test_clear(self, store: InMemorySessionStore) -> None:
        await store.create_session()
        await store.create_session()
        await store.clear()
        assert await store.session_count() == 0
