"""
시세 조회 / 주문 실행 게이트웨이 추상 클래스 정의.

[ 역할 ]
    거래소와의 통신을 추상화하는 인터페이스 정의.
    실제 거래소 교체 시 이 클래스만 구현하면 됨.

[ 구현체 ]
    - brokers/mock_gateway.py::MockMarketGateway  (테스트/백테스트/데모용)

[ 호출하는 곳 ]
    - engine/trading_cycle.py      → get_snapshot() (사이클마다 1회)
    - engine/order_executor.py     → submit_order() (매수/매도 확정 전)

[ 장애 규약 ]
    get_snapshot()은 데이터를 전혀 얻지 못하면 UpstreamDataUnavailable을 던지거나
    빈 리스트를 반환한다. 두 경우 모두 사이클은 전략을 비활성화하고 중단한다.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class OrderSide(Enum):
    """주문 방향."""
    BUY = "buy"
    SELL = "sell"


@dataclass(frozen=True)
class Instrument:
    """한 종목의 시세 스냅샷. 사이클 동안 변경되지 않는다."""
    symbol: str
    current_price: float
    price_change_24h: float = 0.0          # 24시간 등락률 (%)
    volume_24h: Optional[float] = None     # 24시간 거래대금 (없을 수 있음)

    @property
    def open_price_24h(self) -> float:
        """등락률로 역산한 24시간 전 가격."""
        base = 1 + self.price_change_24h / 100
        if base <= 0:
            return self.current_price
        return self.current_price / base


@dataclass
class OrderResult:
    """submit_order()의 반환값."""
    symbol: str
    side: OrderSide
    quantity: float
    success: bool
    filled_price: Optional[float] = None   # 체결 가격 (게이트웨이가 알려줄 때만)
    order_id: str = ""
    message: str = ""


class MarketGateway(ABC):
    """시세/주문 게이트웨이 추상 클래스.

    모든 거래소 구현체는 이 클래스를 상속받아 아래 메서드를 구현해야 한다.
    호출 타임아웃은 구현체 책임이며, 엔진은 별도 제한을 두지 않는다.
    """

    @abstractmethod
    def get_snapshot(self, universe: list[str]) -> list[Instrument]:
        """거래 대상 종목들의 현재 시세 조회.

        Args:
            universe: 조회할 심볼 목록 (빈 리스트면 게이트웨이가 아는 전체)

        Raises:
            UpstreamDataUnavailable: 시세를 전혀 얻지 못한 경우
        """
        ...

    @abstractmethod
    def submit_order(self, symbol: str, side: OrderSide, quantity: float) -> OrderResult:
        """시장가 주문 제출.

        Args:
            symbol: 종목 심볼
            side: 매수/매도
            quantity: 주문 수량
        """
        ...
