"""
이벤트 브로드캐스터.

[ 역할 ]
    거래/잔고/포트폴리오/봇 상태 변경을 구독자(UI, 로그 등)에게 전달하는
    프로세스 내 fire-and-forget 발행 지점. 전송 방식(WebSocket 등)은 구독자의 몫.

[ 이벤트 종류 ]
    trade       - 거래 확정 (Trade.to_dict())
    balance     - 잔고 변경 (main_balance, profit_balance)
    portfolio   - 사이클 종료 시 포트폴리오 요약 (Ledger.get_summary())
    bot_status  - 자동매매 활성/비활성 전환 (데이터 장애, 목표 수익 도달 등)

[ 호출하는 곳 ]
    - engine/order_executor.py  → trade, balance
    - engine/trading_cycle.py   → portfolio, bot_status
"""

import logging
import threading
from typing import Any, Callable

logger = logging.getLogger("autotrader.events")

EVENT_TRADE = "trade"
EVENT_BALANCE = "balance"
EVENT_PORTFOLIO = "portfolio"
EVENT_BOT_STATUS = "bot_status"

Subscriber = Callable[[str, dict[str, Any]], None]


class EventBroadcaster:
    """구독자 목록을 관리하고 이벤트를 전달한다.

    구독자에서 발생한 예외는 로그만 남기고 무시한다 (발행자는 실패를 모름).
    """

    def __init__(self):
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, subscriber: Subscriber) -> None:
        with self._lock:
            if subscriber not in self._subscribers:
                self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: Subscriber) -> None:
        with self._lock:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

    def publish(self, event_type: str, payload: dict[str, Any]) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for subscriber in subscribers:
            try:
                subscriber(event_type, payload)
            except Exception as e:
                logger.warning(f"이벤트 구독자 오류 ({event_type}): {e}")


class EventRecorder:
    """받은 이벤트를 순서대로 저장하는 구독자 (백테스트/테스트용)."""

    def __init__(self):
        self.events: list[tuple[str, dict[str, Any]]] = []
        self._lock = threading.Lock()

    def __call__(self, event_type: str, payload: dict[str, Any]) -> None:
        with self._lock:
            self.events.append((event_type, payload))

    def of_type(self, event_type: str) -> list[dict[str, Any]]:
        with self._lock:
            return [payload for kind, payload in self.events if kind == event_type]
