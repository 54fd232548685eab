import threading
import time

from autotrader.engine.scheduler import CycleScheduler, SchedulerRegistry, SchedulerState
from autotrader.engine.trading_cycle import CycleOutcome, CycleReport

ACCOUNT = "acc-1"


class FakeCycle:
    """호출 횟수와 동시 실행 수를 기록하는 사이클."""

    def __init__(self, outcome=CycleOutcome.COMPLETED, block_after=None, error=None):
        self.outcome = outcome
        self.block_after = block_after     # 이 횟수 이후 호출은 release가 set될 때까지 대기
        self.error = error
        self.release = threading.Event()
        self.calls = 0
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def run(self, account_id):
        with self._lock:
            self.calls += 1
            call_no = self.calls
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.block_after is not None and call_no > self.block_after:
                self.release.wait(5)
            if self.error is not None:
                raise self.error
            return CycleReport(account_id, self.outcome)
        finally:
            with self._lock:
                self.active -= 1


def wait_until(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_start_runs_one_cycle_immediately():
    cycle = FakeCycle()
    scheduler = CycleScheduler(ACCOUNT, cycle, interval_seconds=60)

    assert scheduler.start() is True
    assert cycle.calls == 1
    assert scheduler.is_running
    assert scheduler.start() is False
    assert cycle.calls == 1

    scheduler.stop()
    scheduler.join(1)


def test_timer_runs_recurring_cycles():
    cycle = FakeCycle()
    scheduler = CycleScheduler(ACCOUNT, cycle, interval_seconds=0.02)
    scheduler.start()

    assert wait_until(lambda: cycle.calls >= 3)

    scheduler.stop()
    scheduler.join(1)


def test_stop_is_idempotent_and_prevents_new_cycles():
    cycle = FakeCycle()
    scheduler = CycleScheduler(ACCOUNT, cycle, interval_seconds=0.02)
    scheduler.start()

    assert scheduler.stop() is True
    assert scheduler.stop() is False
    assert scheduler.state == SchedulerState.STOPPED
    scheduler.join(1)

    calls = cycle.calls
    time.sleep(0.1)
    assert cycle.calls == calls
    assert scheduler.run_tick() is None
    assert scheduler.start() is False


def test_overlapping_tick_is_dropped():
    cycle = FakeCycle(block_after=0)
    scheduler = CycleScheduler(ACCOUNT, cycle, interval_seconds=60)

    worker = threading.Thread(target=scheduler.run_tick)
    worker.start()
    assert wait_until(lambda: cycle.active == 1)

    assert scheduler.run_tick() is None
    assert scheduler.skipped_ticks == 1
    assert cycle.calls == 1

    cycle.release.set()
    worker.join(1)
    assert cycle.max_active == 1


def test_timer_fires_during_long_cycle_do_not_stack():
    cycle = FakeCycle(block_after=1)
    scheduler = CycleScheduler(ACCOUNT, cycle, interval_seconds=0.02)
    scheduler.start()

    assert wait_until(lambda: scheduler.skipped_ticks >= 2)
    assert cycle.max_active == 1
    assert cycle.calls == 2

    scheduler.stop()
    cycle.release.set()
    scheduler.join(1)
    assert cycle.max_active == 1


def test_stop_outcome_stops_from_inside_tick():
    cycle = FakeCycle(outcome=CycleOutcome.DATA_UNAVAILABLE)
    scheduler = CycleScheduler(ACCOUNT, cycle, interval_seconds=0.02)

    scheduler.start()

    assert scheduler.is_stopped
    assert scheduler.state == SchedulerState.STOPPED
    time.sleep(0.1)
    assert cycle.calls == 1


def test_cycle_exception_does_not_kill_scheduler():
    cycle = FakeCycle(error=RuntimeError("unexpected"))
    scheduler = CycleScheduler(ACCOUNT, cycle, interval_seconds=60)

    scheduler.start()
    assert scheduler.is_running
    assert scheduler.state == SchedulerState.IDLE

    cycle.error = None
    report = scheduler.run_tick()
    assert report.outcome == CycleOutcome.COMPLETED
    assert scheduler.cycles_run == 1

    scheduler.stop()


def test_registry_owns_one_handle_per_account():
    cycle = FakeCycle()
    registry = SchedulerRegistry(cycle, interval_seconds=60)

    assert registry.start(ACCOUNT) is True
    assert registry.start(ACCOUNT) is False
    assert registry.start("acc-2") is True
    assert registry.is_running(ACCOUNT)
    assert registry.running_accounts() == [ACCOUNT, "acc-2"]

    assert registry.stop(ACCOUNT) is True
    assert registry.stop(ACCOUNT) is False
    assert not registry.is_running(ACCOUNT)

    registry.stop_all(timeout=1)
    assert registry.running_accounts() == []


def test_registry_releases_self_stopped_scheduler():
    cycle = FakeCycle(outcome=CycleOutcome.TARGET_REACHED)
    registry = SchedulerRegistry(cycle, interval_seconds=60)

    registry.start(ACCOUNT)

    assert not registry.is_running(ACCOUNT)
    assert registry.get(ACCOUNT) is None
