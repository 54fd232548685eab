"""
주문 실행 어댑터.

[ 역할 ]
    매수/매도 결정을 외부 주문으로 보내고, 체결이 확인된 경우에만 원장에 반영.
    Ledger의 상태 전이 메서드를 호출하는 유일한 곳이다.

[ 실행 순서 ]
    execute_buy() / execute_sell() 호출 시:
        1. 사전 확인 (잔고 / 보유 수량) → 실패 시 주문하지 않음. 매수 금액은 여기서 확정
        2. gateway.submit_order()      → 실패 시 OrderRejected (원장 변경 없음)
        3. ledger.apply_buy (확정 금액 차감) / apply_sell (체결가 기준)
        4. broadcaster: trade, balance 이벤트
        5. notifier.notify()            → 실패해도 거래는 유지 (로그만)

[ 오류 처리 ]
    후보 단위 오류(EngineError)는 여기서 잡아 로그를 남기고 None을 반환한다.
    호출자(trading_cycle)는 다음 후보로 계속 진행하면 된다.

[ 호출하는 곳 ]
    - engine/trading_cycle.py
"""

import logging
from typing import Optional

from autotrader.core.exceptions import (
    EngineError,
    InsufficientBalance,
    NoSuchPosition,
    NotificationFailure,
    OrderRejected,
    OversizedSell,
)
from autotrader.core.ledger_store import POSITION_EPSILON, Trade
from autotrader.core.market_gateway import MarketGateway, OrderResult, OrderSide
from autotrader.core.notifier import Notifier
from autotrader.data.ledger import Ledger
from autotrader.engine.events import EVENT_BALANCE, EVENT_TRADE, EventBroadcaster
from autotrader.notifiers.telegram import format_trade_message

logger = logging.getLogger("autotrader.executor")


class OrderExecutor:
    """외부 주문 → 원장 반영 → 이벤트 → 알림."""

    def __init__(
        self,
        gateway: MarketGateway,
        ledger: Ledger,
        broadcaster: EventBroadcaster,
        notifier: Optional[Notifier] = None,
    ):
        self.gateway = gateway
        self.ledger = ledger
        self.broadcaster = broadcaster
        self.notifier = notifier

    def execute_buy(
        self,
        account_id: str,
        symbol: str,
        quantity: float,
        price: float,
        reason: str = "",
        is_automated: bool = True,
    ) -> Optional[Trade]:
        """매수 실행. 성공 시 Trade, 건너뛰면 None.

        투자 금액(quantity * 호가)은 주문 전에 확정하고, 원장에는 체결가와 무관하게
        그 금액을 차감한다. 잔고 확인을 통과한 주문은 체결 후 원장에서 거절되지 않는다.
        """
        invest_amount = quantity * price
        try:
            account = self.ledger.get_account(account_id)
            if account.main_balance < invest_amount:
                raise InsufficientBalance(
                    f"{symbol} 매수 금액 {invest_amount:.4f} > 가용 잔고 {account.main_balance:.4f}"
                )
            result = self._submit(symbol, OrderSide.BUY, quantity)
        except EngineError as e:
            logger.warning(f"[{account_id}] 매수 건너뜀 {symbol}: {type(e).__name__}: {e}")
            return None

        fill_price = result.filled_price or price
        try:
            trade = self.ledger.apply_buy(
                account_id, symbol, quantity, fill_price, invest_amount, reason, is_automated
            )
        except EngineError as e:
            # 같은 계좌의 동시 거래로 잔고가 줄어든 경우. 외부 주문은 이미 체결됨.
            logger.error(f"[{account_id}] 체결 후 원장 반영 실패 {symbol} {result.order_id}: {type(e).__name__}: {e}")
            return None

        logger.info(f"[{account_id}] 매수: {symbol} {quantity:.6f} @ {trade.price:.6g} ({reason})")
        self._after_trade(account_id, trade)
        return trade

    def execute_sell(
        self,
        account_id: str,
        symbol: str,
        quantity: float,
        price: float,
        reason: str = "",
        is_automated: bool = True,
    ) -> Optional[Trade]:
        """매도 실행. 성공 시 Trade, 건너뛰면 None."""
        try:
            position = self.ledger.get_position(account_id, symbol)
            if position is None or position.is_closed:
                raise NoSuchPosition(f"보유하지 않은 종목: {symbol}")
            if quantity > position.amount + POSITION_EPSILON:
                raise OversizedSell(f"{symbol} 매도 수량 {quantity:.6f} > 보유 수량 {position.amount:.6f}")
            result = self._submit(symbol, OrderSide.SELL, quantity)
            fill_price = result.filled_price or price
            trade = self.ledger.apply_sell(account_id, symbol, quantity, fill_price, reason, is_automated)
        except EngineError as e:
            logger.warning(f"[{account_id}] 매도 건너뜀 {symbol}: {type(e).__name__}: {e}")
            return None

        logger.info(f"[{account_id}] 매도: {symbol} {quantity:.6f} @ {trade.price:.6g} 손익 {trade.pnl:+.4f} ({reason})")
        self._after_trade(account_id, trade)
        return trade

    def liquidate_all(self, account_id: str, prices: dict[str, float], reason: str) -> list[Trade]:
        """보유 포지션 전량 매도. 주문이 거절된 종목은 그대로 남는다."""
        fills: dict[str, float] = {}
        for position in self.ledger.get_positions(account_id):
            price = prices.get(position.symbol)
            if price is None:
                logger.warning(f"[{account_id}] 청산 시세 없음, 건너뜀: {position.symbol}")
                continue
            try:
                result = self._submit(position.symbol, OrderSide.SELL, position.amount)
            except OrderRejected as e:
                logger.warning(f"[{account_id}] 청산 주문 실패 {position.symbol}: {e}")
                continue
            fills[position.symbol] = result.filled_price or price

        trades = self.ledger.liquidate_all(account_id, fills, reason)
        for trade in trades:
            logger.info(f"[{account_id}] 청산: {trade.symbol} {trade.amount:.6f} @ {trade.price:.6g} 손익 {trade.pnl:+.4f}")
            self._after_trade(account_id, trade)
        return trades

    # ─── 내부 ──────────────────────────────────────────────────────────────

    def _submit(self, symbol: str, side: OrderSide, quantity: float) -> OrderResult:
        """게이트웨이 주문. 실패(거절/예외)는 OrderRejected로 통일."""
        try:
            result = self.gateway.submit_order(symbol, side, quantity)
        except Exception as e:
            raise OrderRejected(f"{symbol} {side.value} 주문 오류: {e}") from e
        if not result.success:
            raise OrderRejected(f"{symbol} {side.value} 주문 거절: {result.message}")
        return result

    def _after_trade(self, account_id: str, trade: Trade) -> None:
        account = self.ledger.get_account(account_id)
        self.broadcaster.publish(EVENT_TRADE, trade.to_dict())
        self.broadcaster.publish(EVENT_BALANCE, {
            "account_id": account_id,
            "main_balance": account.main_balance,
            "profit_balance": account.profit_balance,
        })
        if self.notifier is None:
            return
        try:
            self.notifier.notify(format_trade_message(trade))
        except NotificationFailure as e:
            logger.warning(f"[{account_id}] 알림 실패: {e}")
        except Exception as e:
            logger.warning(f"[{account_id}] 알림 실패 (예상치 못한 오류): {e}")
