"""
원장 저장소 추상 클래스 및 원장 도메인 모델 정의.

[ 역할 ]
    계좌(Account), 포지션(Position), 거래 기록(Trade)의 영속 표현과
    읽기/쓰기 계약을 정의. 저장 기술(DB, 파일 등)은 구현체가 결정한다.

[ 구현체 ]
    - data/memory_store.py::InMemoryLedgerStore  (테스트/백테스트/데모용)

[ 호출하는 곳 ]
    - data/ledger.py::Ledger 만 이 저장소를 직접 변경한다.
      나머지 컴포넌트는 Ledger의 조회 메서드를 통해 읽는다.

[ 불변 조건 ]
    - Account.main_balance >= 0
    - Position.total_invested == Position.amount * Position.average_price (오차 1e-6)
    - Trade는 생성 후 변경/삭제되지 않는다 (append-only)
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

# 이 수량 미만으로 남으면 포지션을 삭제한다
POSITION_EPSILON = 1e-6


class TradeType(Enum):
    """거래 종류."""
    BUY = "buy"
    SELL = "sell"


@dataclass
class Account:
    """계좌 잔고. 온보딩 시 1회 생성되어 계속 유지된다."""
    account_id: str
    main_balance: float = 0.0      # 주문 가능 현금
    profit_balance: float = 0.0    # 실현 수익 누적 (수익 매도 시에만 증가)


@dataclass
class Position:
    """종목별 보유 포지션. (account_id, symbol)이 키."""
    account_id: str
    symbol: str
    amount: float = 0.0            # 보유 수량
    average_price: float = 0.0     # 가중평균 매수가 (매수 시에만 갱신)
    total_invested: float = 0.0    # amount * average_price

    def market_value(self, price: float) -> float:
        """주어진 가격 기준 평가 금액."""
        return self.amount * price

    def unrealized_pnl(self, price: float) -> float:
        """주어진 가격 기준 평가 손익."""
        return self.market_value(price) - self.total_invested

    def update_on_buy(self, quantity: float, price: float) -> None:
        """매수 시 포지션 업데이트. 평균가를 가중평균으로 재계산."""
        self.amount += quantity
        self.total_invested += quantity * price
        self.average_price = self.total_invested / self.amount if self.amount > 0 else 0.0

    def update_on_sell(self, quantity: float) -> float:
        """매도 시 포지션 업데이트. 차감된 원가(비례 원가)를 반환.

        원가는 매도 비율만큼 비례 차감하며 평균가는 바뀌지 않는다.
        """
        ratio = quantity / self.amount if self.amount > 0 else 1.0
        cost_basis = self.total_invested * ratio
        self.amount -= quantity
        self.total_invested -= cost_basis
        if self.amount < POSITION_EPSILON:
            self.amount = 0.0
            self.total_invested = 0.0
        return cost_basis

    @property
    def is_closed(self) -> bool:
        return self.amount < POSITION_EPSILON


@dataclass(frozen=True)
class Trade:
    """거래 기록. 외부 주문이 확정된 경우에만 생성된다."""
    account_id: str
    symbol: str
    trade_type: TradeType
    amount: float
    price: float
    total: float
    pnl: Optional[float] = None    # 매도 시에만: (price - 매도 시점 평균가) * amount
    reason: str = ""               # 시그널 사유
    is_automated: bool = True
    timestamp: datetime = field(default_factory=datetime.now)
    trade_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])

    def to_dict(self) -> dict:
        return {
            "trade_id": self.trade_id,
            "account_id": self.account_id,
            "symbol": self.symbol,
            "type": self.trade_type.value,
            "amount": self.amount,
            "price": self.price,
            "total": self.total,
            "pnl": self.pnl,
            "reason": self.reason,
            "is_automated": self.is_automated,
            "timestamp": self.timestamp.isoformat(),
        }


class LedgerStore(ABC):
    """원장 저장소 추상 클래스.

    get_* 메서드는 내부 상태의 사본을 반환해야 한다.
    호출자가 반환값을 수정해도 save/upsert 전까지 저장소는 바뀌지 않는다.
    """

    @abstractmethod
    def get_account(self, account_id: str) -> Optional[Account]:
        """계좌 조회. 없으면 None."""
        ...

    @abstractmethod
    def save_account(self, account: Account) -> None:
        """계좌 저장 (잔고 갱신)."""
        ...

    @abstractmethod
    def get_position(self, account_id: str, symbol: str) -> Optional[Position]:
        """포지션 조회. 없으면 None."""
        ...

    @abstractmethod
    def list_positions(self, account_id: str) -> list[Position]:
        """계좌의 전체 보유 포지션."""
        ...

    @abstractmethod
    def upsert_position(self, position: Position) -> None:
        """포지션 생성 또는 갱신."""
        ...

    @abstractmethod
    def delete_position(self, account_id: str, symbol: str) -> None:
        """포지션 삭제 (전량 청산 시)."""
        ...

    @abstractmethod
    def append_trade(self, trade: Trade) -> None:
        """거래 기록 추가."""
        ...

    @abstractmethod
    def list_trades(self, account_id: str) -> list[Trade]:
        """거래 기록 조회 (오래된 순)."""
        ...
