"""
원장(Ledger) 관리 모듈.

[ 역할 ]
    현금 잔고(main_balance), 실현 수익(profit_balance), 종목별 포지션,
    거래 기록을 통합 관리. 매수/매도 상태 전이를 계좌 단위로 원자적으로 적용한다.

[ 주요 메서드 ]
    apply_buy()      - invest_amount 차감 + 포지션 가중평균 갱신 + BUY 기록
                       (원가 = invest_amount, 실효 단가 = invest_amount / qty)
    apply_sell()     - 비례 원가 차감 + 수익/원금 분리 입금 + SELL 기록
    liquidate_all()  - 보유 포지션 전량 매도 (목표 수익 도달 시)

[ 매도 정산 규칙 ]
    매도대금 = qty * price, 비례원가 = total_invested * (qty / amount)
    매도대금 > 비례원가 (수익) → main_balance += 비례원가, profit_balance += 차액
    그 외 (손실/본전)          → main_balance += 매도대금

[ 동시성 ]
    계좌마다 락 1개. 같은 계좌의 연산은 직렬화되고, 다른 계좌는 서로 독립.

[ 호출하는 곳 ]
    - engine/order_executor.py::OrderExecutor 만 apply_*/liquidate_all을 호출한다
      (외부 주문 체결이 확인된 뒤에만).
    - engine/trading_cycle.py, backtest/engine.py는 조회 메서드만 사용.
"""

import logging
import threading
from datetime import date, datetime
from typing import Any, Optional

from autotrader.core.exceptions import InsufficientBalance, NoSuchPosition, OversizedSell
from autotrader.core.ledger_store import (
    POSITION_EPSILON,
    Account,
    LedgerStore,
    Position,
    Trade,
    TradeType,
)

logger = logging.getLogger("autotrader.ledger")


class Ledger:
    """원장 클래스. LedgerStore 위에서 잔고/포지션 불변 조건을 지킨다."""

    def __init__(self, store: LedgerStore):
        self.store = store
        self._locks: dict[str, threading.RLock] = {}   # account_id → 계좌 락
        self._locks_guard = threading.Lock()

    def _lock_for(self, account_id: str) -> threading.RLock:
        with self._locks_guard:
            if account_id not in self._locks:
                self._locks[account_id] = threading.RLock()
            return self._locks[account_id]

    def _require_account(self, account_id: str) -> Account:
        account = self.store.get_account(account_id)
        if account is None:
            raise KeyError(f"계좌 없음: {account_id}")
        return account

    # ─── 조회 ──────────────────────────────────────────────────────────────

    def get_account(self, account_id: str) -> Account:
        with self._lock_for(account_id):
            return self._require_account(account_id)

    def get_positions(self, account_id: str) -> list[Position]:
        with self._lock_for(account_id):
            return self.store.list_positions(account_id)

    def get_position(self, account_id: str, symbol: str) -> Optional[Position]:
        with self._lock_for(account_id):
            return self.store.get_position(account_id, symbol)

    def get_trades(self, account_id: str) -> list[Trade]:
        return self.store.list_trades(account_id)

    def positions_value(self, account_id: str, prices: dict[str, float]) -> float:
        """보유 포지션 평가 금액. 시세가 없는 종목은 평균가로 평가."""
        total = 0.0
        for position in self.get_positions(account_id):
            price = prices.get(position.symbol, position.average_price)
            total += position.market_value(price)
        return total

    def total_value(self, account_id: str, prices: dict[str, float]) -> float:
        """총 자산 = 현금 + 실현 수익 + 포지션 평가 금액."""
        with self._lock_for(account_id):
            account = self._require_account(account_id)
            return account.main_balance + account.profit_balance + self.positions_value(account_id, prices)

    def daily_realized_loss(self, account_id: str, day: date | None = None) -> float:
        """당일 매도 거래의 실현 손실 합계 (양수로 반환)."""
        day = day or datetime.now().date()
        loss = 0.0
        for trade in self.store.list_trades(account_id):
            if trade.trade_type != TradeType.SELL or trade.timestamp.date() != day:
                continue
            if trade.pnl is not None and trade.pnl < 0:
                loss += -trade.pnl
        return loss

    def get_summary(self, account_id: str, prices: dict[str, float]) -> dict[str, Any]:
        """포트폴리오 요약 (portfolio 이벤트 payload)."""
        with self._lock_for(account_id):
            account = self._require_account(account_id)
            positions = []
            for p in self.store.list_positions(account_id):
                price = prices.get(p.symbol, p.average_price)
                pnl = p.unrealized_pnl(price)
                positions.append({
                    "symbol": p.symbol,
                    "amount": p.amount,
                    "average_price": p.average_price,
                    "total_invested": p.total_invested,
                    "current_price": price,
                    "current_value": p.market_value(price),
                    "pnl": pnl,
                    "pnl_percentage": pnl / p.total_invested * 100 if p.total_invested > 0 else 0.0,
                })
            positions_value = sum(item["current_value"] for item in positions)
            return {
                "account_id": account_id,
                "main_balance": account.main_balance,
                "profit_balance": account.profit_balance,
                "positions_value": positions_value,
                "total_value": account.main_balance + account.profit_balance + positions_value,
                "num_positions": len(positions),
                "positions": positions,
            }

    # ─── 상태 전이 ──────────────────────────────────────────────────────────

    def apply_buy(
        self,
        account_id: str,
        symbol: str,
        quantity: float,
        price: float,
        invest_amount: float,
        reason: str = "",
        is_automated: bool = True,
    ) -> Trade:
        """매수 반영.

        잔고는 주문 전에 확정된 invest_amount만큼 차감하고, 포지션 원가도 같은 금액으로
        잡는다. price는 체결가로 거래 기록에만 남는다.

        Raises:
            InsufficientBalance: main_balance < invest_amount (잔고를 음수로 만들지 않음)
            ValueError: 수량/가격/투자 금액이 0 이하
        """
        if quantity <= 0 or price <= 0 or invest_amount <= 0:
            raise ValueError(f"잘못된 매수 수량/가격: {symbol} qty={quantity} price={price} invest={invest_amount}")

        with self._lock_for(account_id):
            account = self._require_account(account_id)
            if account.main_balance < invest_amount:
                raise InsufficientBalance(
                    f"{symbol} 매수 금액 {invest_amount:.4f} > 가용 잔고 {account.main_balance:.4f}"
                )

            position = self.store.get_position(account_id, symbol)
            if position is None:
                position = Position(account_id=account_id, symbol=symbol)
            position.update_on_buy(quantity, invest_amount / quantity)

            account.main_balance -= invest_amount
            trade = Trade(
                account_id=account_id,
                symbol=symbol,
                trade_type=TradeType.BUY,
                amount=quantity,
                price=price,
                total=invest_amount,
                reason=reason,
                is_automated=is_automated,
            )

            self.store.save_account(account)
            self.store.upsert_position(position)
            self.store.append_trade(trade)

        logger.debug(f"매수 반영: {symbol} {quantity:.6f} @ {price:.6f} (잔고 {account.main_balance:.4f})")
        return trade

    def apply_sell(
        self,
        account_id: str,
        symbol: str,
        quantity: float,
        price: float,
        reason: str = "",
        is_automated: bool = True,
    ) -> Trade:
        """매도 반영.

        Raises:
            NoSuchPosition: 보유하지 않은 종목
            OversizedSell: 보유 수량 초과 매도
        """
        if quantity <= 0 or price <= 0:
            raise ValueError(f"잘못된 매도 수량/가격: {symbol} qty={quantity} price={price}")

        with self._lock_for(account_id):
            account = self._require_account(account_id)
            position = self.store.get_position(account_id, symbol)
            if position is None or position.is_closed:
                raise NoSuchPosition(f"보유하지 않은 종목: {symbol}")
            if quantity > position.amount + POSITION_EPSILON:
                raise OversizedSell(f"{symbol} 매도 수량 {quantity:.6f} > 보유 수량 {position.amount:.6f}")
            quantity = min(quantity, position.amount)

            average_price = position.average_price
            proceeds = quantity * price
            cost_basis = position.update_on_sell(quantity)

            if proceeds > cost_basis:
                account.main_balance += cost_basis
                account.profit_balance += proceeds - cost_basis
            else:
                account.main_balance += proceeds

            trade = Trade(
                account_id=account_id,
                symbol=symbol,
                trade_type=TradeType.SELL,
                amount=quantity,
                price=price,
                total=proceeds,
                pnl=(price - average_price) * quantity,
                reason=reason,
                is_automated=is_automated,
            )

            self.store.save_account(account)
            if position.is_closed:
                self.store.delete_position(account_id, symbol)
            else:
                self.store.upsert_position(position)
            self.store.append_trade(trade)

        logger.debug(f"매도 반영: {symbol} {quantity:.6f} @ {price:.6f} (손익 {trade.pnl:+.4f})")
        return trade

    def liquidate_all(
        self,
        account_id: str,
        prices: dict[str, float],
        reason: str = "목표 수익 도달 - 전량 청산",
    ) -> list[Trade]:
        """보유 포지션 전량 매도. 가격이 주어지지 않은 종목은 건너뛴다."""
        trades = []
        with self._lock_for(account_id):
            for position in self.store.list_positions(account_id):
                price = prices.get(position.symbol)
                if price is None or price <= 0:
                    logger.warning(f"청산 가격 없음, 건너뜀: {position.symbol}")
                    continue
                trades.append(self.apply_sell(account_id, position.symbol, position.amount, price, reason))
        return trades
