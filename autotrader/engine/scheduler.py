"""
매매 사이클 스케줄러.

[ 역할 ]
    계좌 1개의 TradingCycle을 일정 간격으로 반복 실행.
    같은 계좌의 사이클이 동시에 두 개 돌지 않도록 보장 (single-flight).

[ 상태 전이 ]
    IDLE ──start()──▶ RUNNING ──사이클 종료──▶ IDLE
                          │
                          └──stop() / 중지 결과──▶ STOPPED (되돌릴 수 없음)

[ 동작 ]
    start()     - 사이클 1회를 즉시 실행한 뒤 타이머 스레드를 띄운다.
                  이미 시작된 스케줄러면 아무것도 하지 않고 False.
    run_tick()  - 사이클 락을 non-blocking으로 잡는다. 이전 사이클이 아직
                  실행 중이면 이번 틱은 버린다 (skipped_ticks 증가, 대기열 없음).
    stop()      - 새 틱이 시작되지 않게 한다. 실행 중인 사이클은 끝까지 진행.
                  두 번째 호출부터는 no-op (False). 사이클 안에서 호출해도 안전.

[ SchedulerRegistry ]
    계좌별 스케줄러 핸들을 소유. start/stop/is_running/stop_all.
    스케줄러가 스스로 멈추면(데이터 장애, 목표 수익 도달) 레지스트리에서 빠진다.

[ 호출하는 곳 ]
    - run_engine.py
"""

import logging
import threading
from enum import Enum
from typing import Callable, Optional

from autotrader.engine.trading_cycle import CycleReport, TradingCycle

logger = logging.getLogger("autotrader.scheduler")

DEFAULT_INTERVAL_SECONDS = 30.0


class SchedulerState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class CycleScheduler:
    """계좌 1개의 사이클 반복 실행기."""

    def __init__(
        self,
        account_id: str,
        cycle: TradingCycle,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        on_stop: Optional[Callable[["CycleScheduler"], None]] = None,
    ):
        self.account_id = account_id
        self.cycle = cycle
        self.interval_seconds = interval_seconds
        self.on_stop = on_stop

        self.state = SchedulerState.IDLE
        self.cycles_run = 0                 # 완료된 사이클 수
        self.skipped_ticks = 0              # 이전 사이클 실행 중이라 버려진 틱 수
        self.last_report: Optional[CycleReport] = None

        self._started = False
        self._stop_event = threading.Event()
        self._cycle_lock = threading.Lock()     # single-flight
        self._state_lock = threading.Lock()
        self._timer_thread: Optional[threading.Thread] = None
        self._workers: list[threading.Thread] = []

    @property
    def is_stopped(self) -> bool:
        return self._stop_event.is_set()

    @property
    def is_running(self) -> bool:
        return self._started and not self.is_stopped

    def start(self) -> bool:
        """사이클 1회 즉시 실행 후 타이머 시작. 이미 시작/중지된 경우 False."""
        with self._state_lock:
            if self._started or self.is_stopped:
                logger.info(f"[{self.account_id}] 스케줄러가 이미 시작됨, 중복 시작 무시")
                return False
            self._started = True

        logger.info(f"[{self.account_id}] 스케줄러 시작 (간격 {self.interval_seconds}초)")
        self.run_tick()

        if not self.is_stopped:
            self._timer_thread = threading.Thread(
                target=self._timer_loop,
                name=f"scheduler-{self.account_id}",
                daemon=True,
            )
            self._timer_thread.start()
        return True

    def run_tick(self) -> Optional[CycleReport]:
        """사이클 1회 실행. 중지됐거나 이전 사이클이 실행 중이면 None."""
        if self.is_stopped:
            return None
        if not self._cycle_lock.acquire(blocking=False):
            with self._state_lock:
                self.skipped_ticks += 1
            logger.warning(f"[{self.account_id}] 이전 사이클 실행 중, 틱 건너뜀")
            return None

        try:
            self._set_state(SchedulerState.RUNNING)
            try:
                report = self.cycle.run(self.account_id)
            except Exception as e:
                logger.exception(f"[{self.account_id}] 사이클 실행 중 예상치 못한 오류: {e}")
                return None

            self.cycles_run += 1
            self.last_report = report
            logger.debug(f"[{self.account_id}] 사이클 완료: {report.outcome.value}, 거래 {len(report.trades)}건")
            if report.outcome.should_stop:
                self.stop()
            return report
        finally:
            self._set_state(SchedulerState.IDLE)
            self._cycle_lock.release()

    def stop(self) -> bool:
        """새 틱을 막는다. 처음 호출이면 True, 이미 중지됐으면 False."""
        with self._state_lock:
            if self._stop_event.is_set():
                return False
            self._stop_event.set()
            self.state = SchedulerState.STOPPED

        logger.info(f"[{self.account_id}] 스케줄러 중지")
        if self.on_stop is not None:
            self.on_stop(self)
        return True

    def join(self, timeout: Optional[float] = None) -> None:
        """타이머 스레드와 실행 중인 틱 스레드가 끝날 때까지 대기."""
        current = threading.current_thread()
        if self._timer_thread is not None and self._timer_thread is not current:
            self._timer_thread.join(timeout)
        for worker in list(self._workers):
            if worker is not current:
                worker.join(timeout)

    # ─── 내부 ──────────────────────────────────────────────────────────────

    def _set_state(self, state: SchedulerState) -> None:
        with self._state_lock:
            if self.state != SchedulerState.STOPPED:
                self.state = state

    def _timer_loop(self) -> None:
        # wait()가 True를 반환하면 stop()이 호출된 것
        while not self._stop_event.wait(self.interval_seconds):
            worker = threading.Thread(
                target=self.run_tick,
                name=f"cycle-{self.account_id}",
                daemon=True,
            )
            self._workers = [w for w in self._workers if w.is_alive()] + [worker]
            worker.start()


class SchedulerRegistry:
    """계좌별 스케줄러 핸들 관리."""

    def __init__(self, cycle: TradingCycle, interval_seconds: float = DEFAULT_INTERVAL_SECONDS):
        self.cycle = cycle
        self.interval_seconds = interval_seconds
        self._handles: dict[str, CycleScheduler] = {}   # account_id → 스케줄러
        self._lock = threading.Lock()

    def start(self, account_id: str) -> bool:
        """계좌 자동매매 시작. 이미 실행 중이면 False."""
        with self._lock:
            handle = self._handles.get(account_id)
            if handle is not None and not handle.is_stopped:
                return False
            handle = CycleScheduler(account_id, self.cycle, self.interval_seconds, on_stop=self._release)
            self._handles[account_id] = handle
        return handle.start()

    def stop(self, account_id: str) -> bool:
        """계좌 자동매매 중지. 실행 중이 아니면 False."""
        with self._lock:
            handle = self._handles.pop(account_id, None)
        if handle is None:
            return False
        return handle.stop()

    def is_running(self, account_id: str) -> bool:
        with self._lock:
            handle = self._handles.get(account_id)
        return handle is not None and not handle.is_stopped

    def get(self, account_id: str) -> Optional[CycleScheduler]:
        with self._lock:
            return self._handles.get(account_id)

    def running_accounts(self) -> list[str]:
        with self._lock:
            return sorted(account_id for account_id, h in self._handles.items() if not h.is_stopped)

    def stop_all(self, timeout: Optional[float] = 5.0) -> None:
        with self._lock:
            handles = list(self._handles.values())
            self._handles.clear()
        for handle in handles:
            handle.stop()
        for handle in handles:
            handle.join(timeout)

    def _release(self, handle: CycleScheduler) -> None:
        with self._lock:
            if self._handles.get(handle.account_id) is handle:
                del self._handles[handle.account_id]
