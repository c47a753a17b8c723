"""Tests for the background controller."""

import pytest
from unittest.mock import Mock

from wbp_app.background import BackgroundController, GateEnforcer, LoggingGateEnforcer
from wbp_app.state.models import CURRENT_TASK_KEY, UNLOCKED_UNTIL_KEY, Evaluation, GateStatus


@pytest.fixture
def enforcer():
    return LoggingGateEnforcer()


@pytest.fixture
def controller(store, channel, gate_params, enforcer, clock):
    return BackgroundController(store, channel, gate_params, enforcer=enforcer, clock=clock)


class TestInstall:
    """Test storage initialisation."""

    @pytest.mark.asyncio
    async def test_install_initialises_missing_key(self, store, controller, enforcer):
        await controller.install()

        assert store.snapshot() == {UNLOCKED_UNTIL_KEY: None}
        assert enforcer.active is False

    @pytest.mark.asyncio
    async def test_install_keeps_existing_grant(self, store, controller, enforcer, clock):
        await store.set({UNLOCKED_UNTIL_KEY: clock.now + 60_000})

        await controller.install()

        assert store.snapshot()[UNLOCKED_UNTIL_KEY] == clock.now + 60_000
        assert enforcer.active is True


class TestHandleMessage:
    """Test channel request handling."""

    @pytest.mark.asyncio
    async def test_request_unlock_succeeds(self, store, controller, enforcer, clock, gate_params):
        response = await controller.handle_message({"action": "RequestUnlock"})

        assert response == {"success": True}
        assert store.snapshot()[UNLOCKED_UNTIL_KEY] == clock.now + gate_params.grant_duration_ms
        assert controller.scheduler.pending_deadlines == [clock.now + gate_params.grant_duration_ms]
        assert enforcer.active is True

        await controller.scheduler.stop()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("message", [{"action": "DeleteEverything"}, "RequestUnlock", {"action": "GrantExpired"}])
    async def test_invalid_requests_fail(self, store, controller, message):
        response = await controller.handle_message(message)

        assert response == {"success": False}
        assert UNLOCKED_UNTIL_KEY not in store.snapshot()

    @pytest.mark.asyncio
    async def test_store_failure_answers_false(self, flaky_store, channel, gate_params, clock):
        controller = BackgroundController(flaky_store, channel, gate_params, clock=clock)
        flaky_store.available = False

        response = await controller.handle_message({"action": "RequestUnlock"})

        assert response == {"success": False}
        assert controller.scheduler.pending_deadlines == []


class TestExpiry:
    """Test expiry timer and reconciliation callbacks."""

    @pytest.mark.asyncio
    async def test_expiry_timer_relocks_and_broadcasts(self, store, channel, controller, enforcer, clock):
        await controller.handle_message({"action": "RequestUnlock"})
        await controller.scheduler.stop()
        received = []
        channel.add_listener(received.append)

        clock.advance(controller.params.grant_duration_ms)
        await controller.on_expiry_timer()

        assert store.snapshot()[UNLOCKED_UNTIL_KEY] is None
        assert enforcer.active is False
        assert received == [{"action": "GrantExpired"}]

    @pytest.mark.asyncio
    async def test_outdated_expiry_timer_is_silent(self, store, channel, controller, enforcer, clock):
        await controller.handle_message({"action": "RequestUnlock"})
        await controller.scheduler.stop()
        received = []
        channel.add_listener(received.append)

        await controller.on_expiry_timer()

        assert store.snapshot()[UNLOCKED_UNTIL_KEY] is not None
        assert enforcer.active is True
        assert received == []

    @pytest.mark.asyncio
    async def test_reconcile_clears_stale_grant(self, store, controller, enforcer, clock):
        await store.set({UNLOCKED_UNTIL_KEY: clock.now - 1})

        assert await controller.reconcile() is True
        assert store.snapshot()[UNLOCKED_UNTIL_KEY] is None
        assert enforcer.active is False

        assert await controller.reconcile() is False

    @pytest.mark.asyncio
    async def test_reconcile_clears_out_of_range_deadline(self, store, controller, enforcer):
        await store.set({UNLOCKED_UNTIL_KEY: -(10**17)})

        assert await controller.reconcile() is True
        assert store.snapshot()[UNLOCKED_UNTIL_KEY] is None
        assert enforcer.active is False

    @pytest.mark.asyncio
    async def test_refresh_absorbs_store_failure(self, flaky_store, channel, gate_params, clock):
        enforcer = Mock(spec=GateEnforcer)
        controller = BackgroundController(flaky_store, channel, gate_params, enforcer=enforcer, clock=clock)
        flaky_store.available = False

        assert await controller.refresh() is None
        enforcer.apply.assert_not_called()


class TestLifecycle:
    """Test start/stop wiring."""

    @pytest.mark.asyncio
    async def test_start_serves_channel_and_sweeps(self, store, channel, controller):
        await controller.start()

        assert channel.connected is True
        assert controller.scheduler.running is True
        assert store.listener_count == 1

        await controller.stop()

        assert channel.connected is False
        assert controller.scheduler.running is False
        assert store.listener_count == 0

    @pytest.mark.asyncio
    async def test_start_rearms_persisted_grant(self, store, controller, clock):
        await store.set({UNLOCKED_UNTIL_KEY: clock.now + 120_000})

        await controller.start()

        assert controller.scheduler.pending_deadlines == [clock.now + 120_000]
        await controller.stop()

    @pytest.mark.asyncio
    async def test_start_with_far_future_grant(self, store, controller, enforcer):
        far_future = 10**17
        await store.set({UNLOCKED_UNTIL_KEY: far_future})

        await controller.start()

        assert enforcer.active is True
        assert controller.scheduler.pending_deadlines == [far_future]
        await controller.stop()

    @pytest.mark.asyncio
    async def test_start_with_store_down(self, flaky_store, channel, gate_params, clock):
        controller = BackgroundController(flaky_store, channel, gate_params, clock=clock)
        flaky_store.available = False

        await controller.start()

        assert channel.connected is True
        assert controller.scheduler.running is True
        await controller.stop()

    @pytest.mark.asyncio
    async def test_external_grant_write_is_rearmed(self, store, controller, clock):
        await controller.start()

        await store.set({UNLOCKED_UNTIL_KEY: clock.now + 5000})

        assert clock.now + 5000 in controller.scheduler.pending_deadlines
        await controller.stop()

    @pytest.mark.asyncio
    async def test_task_change_does_not_touch_grant(self, store, controller):
        await controller.start()
        before = store.snapshot()[UNLOCKED_UNTIL_KEY]

        await store.set({CURRENT_TASK_KEY: "Finish report"})

        assert store.snapshot()[UNLOCKED_UNTIL_KEY] == before
        await controller.stop()


class TestLoggingGateEnforcer:
    """Test the default enforcement hook."""

    def test_records_decisions(self):
        enforcer = LoggingGateEnforcer()
        unlocked = Evaluation(status=GateStatus.UNLOCKED, evaluated_at=0, expires_at=10, remaining_ms=10)
        locked = Evaluation(status=GateStatus.LOCKED, evaluated_at=10)

        assert enforcer.active is None
        enforcer.apply(True, ("youtube.com",), unlocked)
        enforcer.apply(True, ("youtube.com",), unlocked)
        enforcer.apply(False, ("youtube.com",), locked)

        assert enforcer.active is False
        assert enforcer.decisions == 3
