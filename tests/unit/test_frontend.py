"""Tests for the front-end view."""

import asyncio

import pytest

from wbp_app.errors import EmptyTaskLabelError, StoreUnavailableError
from wbp_app.frontend import NO_TASK_LABEL, FrontEndView, ViewStatus
from wbp_app.state.models import CURRENT_TASK_KEY, UNLOCKED_UNTIL_KEY, GateStatus


@pytest.fixture
def view(store, channel, gate_params, clock):
    return FrontEndView(store, channel, gate_params=gate_params, clock=clock)


class TestViewStatus:
    """Test the display snapshot."""

    def test_defaults(self):
        status = ViewStatus()

        assert status.status == GateStatus.LOCKED
        assert status.task_label == NO_TASK_LABEL
        assert status.remaining_text == ""

    def test_remaining_text_while_unlocked(self):
        status = ViewStatus(status=GateStatus.UNLOCKED, remaining_ms=1_799_000)
        assert status.remaining_text == "29:59"


class TestTaskLabel:
    """Test task label load/save."""

    @pytest.mark.asyncio
    async def test_load_without_task(self, view):
        assert await view.load_task() == NO_TASK_LABEL

    @pytest.mark.asyncio
    async def test_save_trims_and_persists(self, store, view):
        await view.save_task("  Write tests  ")

        assert store.snapshot()[CURRENT_TASK_KEY] == "Write tests"
        assert view.status.task_label == "Write tests"
        assert view.status.message == "Task saved!"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("label", ["", "   ", None])
    async def test_empty_label_rejected(self, store, view, label):
        with pytest.raises(EmptyTaskLabelError):
            await view.save_task(label)

        assert CURRENT_TASK_KEY not in store.snapshot()
        assert view.status.message == "Please enter a task"

    @pytest.mark.asyncio
    async def test_load_keeps_label_when_store_down(self, flaky_store, channel, clock):
        view = FrontEndView(flaky_store, channel, clock=clock)
        await flaky_store.set({CURRENT_TASK_KEY: "Study"})
        await view.load_task()
        flaky_store.available = False

        assert await view.load_task() == "Study"

    @pytest.mark.asyncio
    async def test_save_propagates_store_failure(self, flaky_store, channel, clock):
        view = FrontEndView(flaky_store, channel, clock=clock)
        flaky_store.available = False

        with pytest.raises(StoreUnavailableError):
            await view.save_task("Study")


class TestRefresh:
    """Test status derivation from the store."""

    @pytest.mark.asyncio
    async def test_refresh_reads_store(self, store, view, clock):
        await store.set({UNLOCKED_UNTIL_KEY: clock.now + 90_000})

        status = await view.refresh()

        assert status.status == GateStatus.UNLOCKED
        assert status.remaining_text == "1:30"

    @pytest.mark.asyncio
    async def test_refresh_never_writes(self, store, view, clock):
        await store.set({UNLOCKED_UNTIL_KEY: clock.now - 1})
        writes = store.write_count

        status = await view.refresh()

        assert status.status == GateStatus.LOCKED
        assert store.write_count == writes

    @pytest.mark.asyncio
    async def test_refresh_keeps_last_status_when_store_down(self, flaky_store, channel, clock):
        view = FrontEndView(flaky_store, channel, clock=clock)
        await flaky_store.set({UNLOCKED_UNTIL_KEY: clock.now + 60_000})
        await view.refresh()
        flaky_store.available = False

        status = await view.refresh()

        assert status.status == GateStatus.UNLOCKED


class TestRequestUnlock:
    """Test unlock requests over the channel."""

    @pytest.mark.asyncio
    async def test_unreachable_background_reports_failure(self, store, view):
        """Scenario D: no background controller is serving."""
        before = store.snapshot()

        assert await view.request_unlock() is False

        assert store.snapshot() == before
        assert view.status.status == GateStatus.LOCKED
        assert view.status.message == "Could not unlock"
        assert view.countdown_running is False

    @pytest.mark.asyncio
    async def test_refused_request_reports_failure(self, channel, view):
        async def refuse(message):
            return {"success": False}

        channel.serve(refuse)

        assert await view.request_unlock() is False
        assert view.status.message == "Could not unlock"

    @pytest.mark.asyncio
    async def test_success_rereads_store(self, store, channel, view, clock):
        async def grant(message):
            await store.set({UNLOCKED_UNTIL_KEY: clock.now + 1000})
            return {"success": True}

        channel.serve(grant)

        assert await view.request_unlock() is True
        assert view.status.status == GateStatus.UNLOCKED
        assert view.status.remaining_ms == 1000
        assert view.countdown_running is True

        await view.close()

    @pytest.mark.asyncio
    async def test_success_response_does_not_override_store(self, channel, view):
        """The response is advisory; an acknowledged grant missing from the store stays locked."""
        async def lying_grant(message):
            return {"success": True}

        channel.serve(lying_grant)

        assert await view.request_unlock() is True
        assert view.status.status == GateStatus.LOCKED

        await view.close()


class TestLifecycle:
    """Test open/close/focus and notifications."""

    @pytest.mark.asyncio
    async def test_open_subscribes_and_loads(self, store, channel, view):
        await store.set({CURRENT_TASK_KEY: "Laundry"})

        status = await view.open()

        assert view.is_open is True
        assert status.task_label == "Laundry"
        assert status.status == GateStatus.LOCKED
        assert store.listener_count == 1

        await view.close()

        assert view.is_open is False
        assert store.listener_count == 0

    @pytest.mark.asyncio
    async def test_reopen_keeps_single_subscription(self, store, channel, view):
        await view.open()
        await store.set({CURRENT_TASK_KEY: "Ironing"})

        status = await view.open()

        assert status.task_label == "Ironing"
        assert store.listener_count == 1
        assert await channel.broadcast({"action": "GrantExpired"}) == 1

        await view.close()

        assert store.listener_count == 0
        assert await channel.broadcast({"action": "GrantExpired"}) == 0

    @pytest.mark.asyncio
    async def test_store_change_updates_open_view(self, store, view, clock):
        await view.open()

        await store.set({UNLOCKED_UNTIL_KEY: clock.now + 5000, CURRENT_TASK_KEY: "Dishes"})

        assert view.status.status == GateStatus.UNLOCKED
        assert view.status.task_label == "Dishes"
        assert view.countdown_running is True
        await view.close()
        assert view.countdown_running is False

    @pytest.mark.asyncio
    async def test_grant_expired_broadcast_refreshes(self, store, channel, view, clock):
        await store.set({UNLOCKED_UNTIL_KEY: clock.now + 5000})
        await view.open()
        assert view.status.status == GateStatus.UNLOCKED

        clock.advance(5000)
        await channel.broadcast({"action": "GrantExpired"})

        assert view.status.status == GateStatus.LOCKED
        await view.close()

    @pytest.mark.asyncio
    async def test_on_focus_rereads(self, store, view, clock):
        await view.open()
        await view.close()

        await store.set({UNLOCKED_UNTIL_KEY: clock.now + 5000, CURRENT_TASK_KEY: "Gym"})
        status = await view.on_focus()

        assert status.status == GateStatus.UNLOCKED
        assert status.task_label == "Gym"

    @pytest.mark.asyncio
    async def test_countdown_stops_when_locked(self, store, channel, fast_view_params, clock):
        view = FrontEndView(store, channel, fast_view_params, clock=clock)
        await store.set({UNLOCKED_UNTIL_KEY: clock.now + 1000})
        await view.open()
        assert view.countdown_running is True

        clock.advance(1000)
        await asyncio.wait_for(view._countdown_task, timeout=2)

        assert view.status.status == GateStatus.LOCKED
        assert view.countdown_running is False
        await view.close()
