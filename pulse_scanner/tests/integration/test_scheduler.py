"""
PULSE SCANNER: Integration Tests for the Subscription Bus and Refresh Scheduler
"""
import asyncio

import pytest

from pulse_scanner.data.fetcher import MarketDataFetcher
from pulse_scanner.scheduler.bus import SubscriptionBus
from pulse_scanner.scheduler.refresh import RefreshScheduler, SchedulerState
from pulse_scanner.utils.errors import ExchangeError


# ─── Subscription Bus ───────────────────────────────────────────

class TestSubscriptionBus:
    def test_replays_latest_on_subscribe(self):
        bus = SubscriptionBus("test", initial=1)
        received = []
        bus.subscribe(received.append)
        assert received == [1]
        bus.publish(2)
        assert received == [1, 2]

    def test_no_replay_before_first_publish(self):
        bus = SubscriptionBus("test")
        received = []
        bus.subscribe(received.append)
        assert received == []
        assert bus.latest is None

    def test_late_subscriber_gets_latest_only(self):
        bus = SubscriptionBus("test")
        bus.publish("a")
        bus.publish("b")
        received = []
        bus.subscribe(received.append)
        assert received == ["b"]

    def test_unsubscribe_is_idempotent(self):
        bus = SubscriptionBus("test")
        received = []
        sub = bus.subscribe(received.append)
        sub.unsubscribe()
        sub.unsubscribe()
        sub()
        assert not sub.active
        assert bus.subscriber_count == 0
        bus.publish(5)
        assert received == []

    def test_delivery_in_subscription_order(self):
        bus = SubscriptionBus("test")
        order = []
        bus.subscribe(lambda v: order.append("first"))
        bus.subscribe(lambda v: order.append("second"))
        bus.publish(1)
        assert order == ["first", "second"]

    def test_failing_listener_is_isolated(self):
        bus = SubscriptionBus("test")
        received = []

        def broken(value):
            raise RuntimeError("listener failure")

        bus.subscribe(broken)
        bus.subscribe(received.append)
        bus.publish(7)
        assert received == [7]

    def test_unsubscribe_during_delivery(self):
        bus = SubscriptionBus("test")
        received = []
        subs = []

        def once(value):
            received.append(value)
            subs[0].unsubscribe()

        subs.append(bus.subscribe(once))
        bus.subscribe(received.append)
        bus.publish(1)
        bus.publish(2)
        assert received == [1, 1, 2]

    def test_clear(self):
        bus = SubscriptionBus("test")
        subs = [bus.subscribe(lambda v: None) for _ in range(3)]
        bus.clear()
        assert bus.subscriber_count == 0
        assert not any(s.active for s in subs)


# ─── Refresh Scheduler ──────────────────────────────────────────

@pytest.fixture
def scheduler(fake_adapter, exchange_settings, refresh_settings, clock):
    fetcher = MarketDataFetcher(fake_adapter, exchange_settings, clock_ms=clock.ms)
    return RefreshScheduler(fetcher, refresh_settings, clock=clock)


class TestRefreshScheduler:
    @pytest.mark.asyncio
    async def test_refresh_publishes_snapshot(self, scheduler):
        received = []
        scheduler.subscribe_to_data(received.append)
        assert received == []

        assert await scheduler.refresh_now() is True
        assert len(received) == 1
        assert [p.symbol for p in received[0]] == ["AAAUSDT", "BBBUSDT"]
        assert [p.symbol for p in scheduler.get_current_data()] == ["AAAUSDT", "BBBUSDT"]

    @pytest.mark.asyncio
    async def test_listeners_share_immutable_snapshot(self, scheduler):
        received = []
        scheduler.subscribe_to_data(received.append)
        scheduler.subscribe_to_data(received.append)
        await scheduler.refresh_now()

        assert isinstance(received[0], tuple)
        with pytest.raises(AttributeError):
            received[0].append(None)
        assert len(received[1]) == 2
        assert len(scheduler.get_current_data()) == 2

    @pytest.mark.asyncio
    async def test_late_data_subscriber_gets_current_snapshot(self, scheduler):
        await scheduler.refresh_now()
        received = []
        scheduler.subscribe_to_data(received.append)
        assert len(received) == 1
        assert len(received[0]) == 2

    @pytest.mark.asyncio
    async def test_progress_subscriber_gets_current_value(self, scheduler):
        received = []
        scheduler.subscribe_to_progress(received.append)
        assert received == [100.0]

    @pytest.mark.asyncio
    async def test_force_refresh_coalesced_while_fetching(self, scheduler, fake_adapter):
        fake_adapter.gate = asyncio.Event()
        first = scheduler.force_refresh()
        assert first is not None
        assert scheduler.state is SchedulerState.FETCHING

        await asyncio.sleep(0)
        assert scheduler.force_refresh() is None
        assert await scheduler.refresh_now() is False

        fake_adapter.gate.set()
        await first
        assert fake_adapter.ticker_calls == 1
        assert scheduler.state is SchedulerState.IDLE
        assert scheduler.stats["coalesced"] == 2

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_snapshot(self, scheduler, fake_adapter, clock):
        await scheduler.refresh_now()
        before = scheduler.get_current_data()
        received = []
        scheduler.subscribe_to_data(received.append)

        fake_adapter.error = ExchangeError("exchange down", "ticker_24h")
        clock.advance(5)
        assert await scheduler.refresh_now() is False

        assert scheduler.get_current_data() == before
        assert len(received) == 1
        assert scheduler.last_error.code == "EXCHANGE_TICKER_24H_ERROR"
        assert scheduler.last_refresh_time == clock()
        assert scheduler.get_current_progress() == 100.0
        assert scheduler.stats["failures"] == 1

    @pytest.mark.asyncio
    async def test_failure_does_not_retry_immediately(self, scheduler, fake_adapter, clock):
        fake_adapter.error = ExchangeError("exchange down", "ticker_24h")
        await scheduler.refresh_now()
        calls = fake_adapter.ticker_calls

        clock.advance(1)
        assert scheduler.tick() is None
        assert fake_adapter.ticker_calls == calls

    @pytest.mark.asyncio
    async def test_progress_decays_and_triggers(self, scheduler, fake_adapter, clock):
        await scheduler.refresh_now()
        progress = []
        scheduler.subscribe_to_progress(progress.append)

        clock.advance(15)
        assert scheduler.tick() is None
        assert scheduler.get_current_progress() == pytest.approx(50.0)

        clock.advance(15)
        task = scheduler.tick()
        assert task is not None
        assert scheduler.is_fetching
        await task

        assert fake_adapter.ticker_calls == 2
        assert progress[:2] == [100.0, pytest.approx(50.0)]
        assert scheduler.get_current_progress() == 100.0

    @pytest.mark.asyncio
    async def test_tick_ignored_while_fetching(self, scheduler, fake_adapter, clock):
        fake_adapter.gate = asyncio.Event()
        task = scheduler.force_refresh()
        await asyncio.sleep(0)
        progress_before = scheduler.get_current_progress()
        clock.advance(100)
        assert scheduler.tick() is None
        assert scheduler.get_current_progress() == progress_before
        fake_adapter.gate.set()
        await task

    @pytest.mark.asyncio
    async def test_unsubscribe_does_not_cancel_fetch(self, scheduler, fake_adapter):
        fake_adapter.gate = asyncio.Event()
        received = []
        sub = scheduler.subscribe_to_data(received.append)
        task = scheduler.force_refresh()
        sub.unsubscribe()
        fake_adapter.gate.set()
        await task
        assert received == []
        assert len(scheduler.get_current_data()) == 2

    @pytest.mark.asyncio
    async def test_start_and_stop(self, scheduler, fake_adapter):
        await scheduler.start()
        assert scheduler.is_running
        await asyncio.sleep(0.01)
        assert fake_adapter.ticker_calls >= 1
        await scheduler.stop()
        assert not scheduler.is_running
