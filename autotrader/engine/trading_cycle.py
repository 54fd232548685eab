"""
매매 사이클 1회 실행 모듈.

[ 역할 ]
    계좌 1개에 대해 설정 확인 → 시세 조회 → 목표 수익 확인 → 청산 → 신규 매수
    → 포트폴리오 이벤트 순서로 한 사이클을 실행. 타이머/단일 실행 보장은
    engine/scheduler.py의 몫이고, 여기는 한 번의 실행만 담당한다.

[ 실행 흐름 ]
    run(account_id) 호출 시:
        1. settings_store.get_settings()  → 비활성이면 INACTIVE 반환
        2. gateway.get_snapshot(universe) → 실패/빈 결과면 전략 비활성화,
           bot_status 이벤트, DATA_UNAVAILABLE 반환 (데이터 없이 거래하지 않음)
        3. 총 자산 >= target_profit       → 전량 청산, 비활성화, TARGET_REACHED 반환
        4. 보유 포지션별 ExitEvaluator    → 매도 결정은 OrderExecutor로
        5. 잔고 > min_trading_balance 이고 당일 손실 한도 미도달이면
           OpportunityRanker              → 매수 결정은 OrderExecutor로
        6. portfolio 이벤트 발행          → COMPLETED 반환

[ 호출하는 곳 ]
    - engine/scheduler.py::CycleScheduler.run_tick()
    - backtest/engine.py::BacktestEngine (시점마다 직접 호출)
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from autotrader.core.exceptions import UpstreamDataUnavailable
from autotrader.core.ledger_store import Trade, TradeType
from autotrader.core.market_gateway import Instrument, MarketGateway
from autotrader.core.settings_store import SettingsStore, StrategySettings
from autotrader.core.signal_analyzer import SignalAnalyzer, SignalResult
from autotrader.data.ledger import Ledger
from autotrader.engine.events import EVENT_BOT_STATUS, EVENT_PORTFOLIO, EventBroadcaster
from autotrader.engine.exit_evaluator import ExitEvaluator
from autotrader.engine.opportunity_ranker import OpportunityRanker
from autotrader.engine.order_executor import OrderExecutor
from autotrader.strategies import create_analyzer

logger = logging.getLogger("autotrader.cycle")

TARGET_REACHED_REASON = "목표 수익 도달 - 전량 청산"


class CycleOutcome(Enum):
    """사이클 종료 사유."""
    INACTIVE = "inactive"
    DATA_UNAVAILABLE = "data_unavailable"
    TARGET_REACHED = "target_reached"
    COMPLETED = "completed"

    @property
    def should_stop(self) -> bool:
        """스케줄러를 멈춰야 하는 결과인지."""
        return self != CycleOutcome.COMPLETED


@dataclass
class CycleReport:
    """run()의 반환값."""
    account_id: str
    outcome: CycleOutcome
    trades: list[Trade] = field(default_factory=list)
    buy_phase_skipped: str = ""          # 매수 단계를 건너뛴 사유 (없으면 빈 문자열)
    started_at: datetime = field(default_factory=datetime.now)

    @property
    def sells(self) -> list[Trade]:
        return [t for t in self.trades if t.trade_type == TradeType.SELL]

    @property
    def buys(self) -> list[Trade]:
        return [t for t in self.trades if t.trade_type == TradeType.BUY]


class TradingCycle:
    """계좌 단위 매매 사이클."""

    def __init__(
        self,
        settings_store: SettingsStore,
        gateway: MarketGateway,
        ledger: Ledger,
        executor: OrderExecutor,
        broadcaster: EventBroadcaster,
        exit_evaluator: Optional[ExitEvaluator] = None,
        ranker: Optional[OpportunityRanker] = None,
        universe: Optional[list[str]] = None,
        min_trading_balance: float = 5.0,
        analyzer_params: Optional[dict[str, Any]] = None,
    ):
        self.settings_store = settings_store
        self.gateway = gateway
        self.ledger = ledger
        self.executor = executor
        self.broadcaster = broadcaster
        self.exit_evaluator = exit_evaluator or ExitEvaluator()
        self.ranker = ranker or OpportunityRanker()
        self.universe = universe or []
        self.min_trading_balance = min_trading_balance
        self.analyzer_params = analyzer_params or {}
        self._analyzers: dict[str, SignalAnalyzer] = {}   # strategy_id → 분석기 (상태 없음, 재사용)

    def analyzer_for(self, strategy_id: str) -> SignalAnalyzer:
        """strategy_id에 해당하는 분석기. 알 수 없는 이름이면 기본 프로필 사용."""
        if strategy_id not in self._analyzers:
            self._analyzers[strategy_id] = create_analyzer(strategy_id, self.analyzer_params, fallback=True)
        return self._analyzers[strategy_id]

    def run(self, account_id: str) -> CycleReport:
        """한 사이클 실행."""
        settings = self.settings_store.get_settings(account_id)
        if not settings.is_active:
            logger.info(f"[{account_id}] 자동매매 비활성 상태")
            return CycleReport(account_id, CycleOutcome.INACTIVE)

        # ─── 시세 조회 ─────────────────────────────────────────────────────
        universe = settings.trading_pairs or self.universe
        try:
            snapshot = self.gateway.get_snapshot(universe)
        except Exception as e:
            error = e if isinstance(e, UpstreamDataUnavailable) else UpstreamDataUnavailable(str(e))
            return self._abort_on_data_loss(account_id, error)
        snapshot = [i for i in snapshot if i.current_price > 0]
        if not snapshot:
            return self._abort_on_data_loss(account_id, UpstreamDataUnavailable("시세 스냅샷이 비어 있음"))

        by_symbol: dict[str, Instrument] = {i.symbol: i for i in snapshot}
        prices = {symbol: i.current_price for symbol, i in by_symbol.items()}
        report = CycleReport(account_id, CycleOutcome.COMPLETED)

        # ─── 목표 수익 ─────────────────────────────────────────────────────
        total_value = self.ledger.total_value(account_id, prices)
        if settings.target_profit > 0 and total_value >= settings.target_profit:
            logger.info(f"[{account_id}] 목표 수익 도달: 총 자산 {total_value:.2f} >= {settings.target_profit:.2f}")
            report.trades.extend(self.executor.liquidate_all(account_id, prices, TARGET_REACHED_REASON))
            self._deactivate(account_id, TARGET_REACHED_REASON)
            report.outcome = CycleOutcome.TARGET_REACHED
            self._publish_portfolio(account_id, prices)
            return report

        analyzer = self.analyzer_for(settings.strategy_id)
        signals: dict[str, SignalResult] = {i.symbol: analyzer.analyze(i) for i in snapshot}

        # ─── 청산 ──────────────────────────────────────────────────────────
        for position in self.ledger.get_positions(account_id):
            instrument = by_symbol.get(position.symbol)
            if instrument is None:
                logger.debug(f"[{account_id}] 시세 없음, 청산 판단 생략: {position.symbol}")
                continue
            decision = self.exit_evaluator.evaluate(position, instrument, signals[position.symbol])
            if not decision.should_sell:
                continue
            quantity = position.amount if decision.sell_ratio >= 1.0 else position.amount * decision.sell_ratio
            trade = self.executor.execute_sell(
                account_id, position.symbol, quantity, instrument.current_price, decision.reason
            )
            if trade is not None:
                report.trades.append(trade)

        # ─── 신규 매수 ─────────────────────────────────────────────────────
        report.buy_phase_skipped = self._buy_phase_blocker(account_id, settings)
        if report.buy_phase_skipped:
            logger.info(f"[{account_id}] 매수 단계 생략: {report.buy_phase_skipped}")
        else:
            balance = self.ledger.get_account(account_id).main_balance
            candidates = self.ranker.rank(snapshot, signals, balance, settings.bounded_risk_level)
            for candidate in candidates:
                trade = self.executor.execute_buy(
                    account_id,
                    candidate.symbol,
                    candidate.quantity,
                    candidate.instrument.current_price,
                    candidate.reason,
                )
                if trade is not None:
                    report.trades.append(trade)

        self._publish_portfolio(account_id, prices)
        return report

    # ─── 내부 ──────────────────────────────────────────────────────────────

    def _buy_phase_blocker(self, account_id: str, settings: StrategySettings) -> str:
        balance = self.ledger.get_account(account_id).main_balance
        if balance <= self.min_trading_balance:
            return f"잔고 {balance:.2f} <= 최소 거래 금액 {self.min_trading_balance:.2f}"
        if settings.max_daily_loss > 0:
            loss = self.ledger.daily_realized_loss(account_id)
            if loss >= settings.max_daily_loss:
                return f"당일 실현 손실 {loss:.2f} >= 한도 {settings.max_daily_loss:.2f}"
        return ""

    def _abort_on_data_loss(self, account_id: str, error: UpstreamDataUnavailable) -> CycleReport:
        logger.error(f"[{account_id}] 시세 조회 실패, 자동매매 중지: {error}")
        self._deactivate(account_id, f"시세 데이터 없음: {error}")
        return CycleReport(account_id, CycleOutcome.DATA_UNAVAILABLE)

    def _deactivate(self, account_id: str, reason: str) -> None:
        self.settings_store.set_active(account_id, False)
        self.broadcaster.publish(EVENT_BOT_STATUS, {
            "account_id": account_id,
            "is_active": False,
            "reason": reason,
        })

    def _publish_portfolio(self, account_id: str, prices: dict[str, float]) -> None:
        self.broadcaster.publish(EVENT_PORTFOLIO, self.ledger.get_summary(account_id, prices))
