"""
백테스팅 엔진 모듈.

[ 역할 ]
    시점별 시세 스냅샷 이력을 실제 매매 사이클(TradingCycle)에 그대로 흘려
    가상 매매를 시뮬레이션하고 성과를 측정. 라이브 실행과 같은 코드 경로를 쓴다.

[ 실행 흐름 ]
    run_backtest() 호출 시:
        1. 메모리 저장소 / Mock 게이트웨이 / 원장 / 실행기 / 사이클 조립
        2. gateway.load_history(data)로 시점별 스냅샷 로드
        3. 시점마다 gateway.advance() → cycle.run()
        4. 시점별 총 자산 기록 (equity_curve)
        5. 사이클이 중지 결과(목표 수익 등)를 내면 조기 종료
        6. metrics.calculate_metrics()로 성과 지표 계산

[ 의존성 ]
    - engine/trading_cycle.py::TradingCycle
    - brokers/mock_gateway.py::MockMarketGateway
    - data/memory_store.py (계좌/설정 저장소)
    - backtest/metrics.py::calculate_metrics()

[ 호출하는 곳 ]
    - run_backtest.py (진입점)에서 생성 및 실행
"""

import logging
from typing import Any, Optional

import pandas as pd

from autotrader.backtest.metrics import BacktestMetrics, calculate_metrics
from autotrader.brokers.mock_gateway import MockMarketGateway
from autotrader.core.settings_store import StrategySettings
from autotrader.data.ledger import Ledger
from autotrader.data.memory_store import InMemoryLedgerStore, InMemorySettingsStore
from autotrader.engine.events import EventBroadcaster, EventRecorder
from autotrader.engine.exit_evaluator import ExitEvaluator
from autotrader.engine.opportunity_ranker import OpportunityRanker
from autotrader.engine.order_executor import OrderExecutor
from autotrader.engine.trading_cycle import CycleOutcome, TradingCycle
from autotrader.strategies import create_analyzer

logger = logging.getLogger("autotrader.backtest")


class BacktestEngine:
    """백테스팅 엔진. run_backtest()로 시뮬레이션 실행."""

    def __init__(
        self,
        initial_balance: float = 100.0,
        slippage_rate: float = 0.001,           # 슬리피지율
        risk_level: int = 5,
        target_profit: float = 0.0,             # 0이면 목표 수익 청산 없음
        max_daily_loss: float = 0.0,            # 0이면 당일 손실 한도 없음
        min_trading_balance: float = 5.0,
        exit_params: Optional[dict[str, Any]] = None,
        ranker_params: Optional[dict[str, Any]] = None,
        account_id: str = "backtest",
    ):
        self.initial_balance = initial_balance
        self.slippage_rate = slippage_rate
        self.risk_level = risk_level
        self.target_profit = target_profit
        self.max_daily_loss = max_daily_loss
        self.min_trading_balance = min_trading_balance
        self.exit_params = exit_params or {}
        self.ranker_params = ranker_params or {}
        self.account_id = account_id

        # 백테스트 실행 후 채워지는 결과
        self.ledger: Ledger | None = None
        self.equity_curve: list[float] = []        # 시점별 총 자산 (MDD/샤프 계산용)
        self.timestamps: list = []
        self.final_prices: dict[str, float] = {}
        self.outcome: CycleOutcome | None = None   # 마지막 사이클 결과
        self.recorder: EventRecorder | None = None
        self.metrics: BacktestMetrics | None = None

    def run_backtest(
        self,
        strategy_name: str,
        data: pd.DataFrame,
        analyzer_params: Optional[dict[str, Any]] = None,
    ) -> BacktestMetrics:
        """백테스트 실행.

        Args:
            strategy_name: 등록된 스코어링 프로필 이름
            data: columns [timestamp, symbol, current_price, price_change_24h, volume_24h]
            analyzer_params: 프로필 파라미터 오버라이드

        Returns:
            BacktestMetrics: 성과 지표

        Raises:
            ConfigurationError: 알 수 없는 프로필 이름
        """
        create_analyzer(strategy_name, analyzer_params)

        ledger_store = InMemoryLedgerStore()
        ledger_store.create_account(self.account_id, main_balance=self.initial_balance)
        settings_store = InMemorySettingsStore()
        settings_store.create_settings(StrategySettings(
            account_id=self.account_id,
            is_active=True,
            strategy_id=strategy_name,
            risk_level=self.risk_level,
            target_profit=self.target_profit,
            max_daily_loss=self.max_daily_loss,
        ))

        gateway = MockMarketGateway(slippage_rate=self.slippage_rate)
        steps = gateway.load_history(data)
        self.equity_curve = []
        self.timestamps = []
        self.outcome = None

        if steps == 0:
            logger.warning("스냅샷 데이터가 없습니다.")
            self.metrics = BacktestMetrics()
            return self.metrics

        self.ledger = Ledger(ledger_store)
        broadcaster = EventBroadcaster()
        self.recorder = EventRecorder()
        broadcaster.subscribe(self.recorder)
        executor = OrderExecutor(gateway, self.ledger, broadcaster)
        cycle = TradingCycle(
            settings_store=settings_store,
            gateway=gateway,
            ledger=self.ledger,
            executor=executor,
            broadcaster=broadcaster,
            exit_evaluator=ExitEvaluator(self.exit_params),
            ranker=OpportunityRanker(self.ranker_params),
            min_trading_balance=self.min_trading_balance,
            analyzer_params=analyzer_params,
        )

        logger.info(f"백테스트 시작: {strategy_name}, {steps}개 시점")

        while gateway.advance():
            report = cycle.run(self.account_id)
            self.final_prices = gateway.prices()
            self.equity_curve.append(self.ledger.total_value(self.account_id, self.final_prices))
            self.timestamps.append(gateway.current_timestamp)
            self.outcome = report.outcome
            if report.outcome.should_stop:
                logger.info(f"[{gateway.current_timestamp}] 사이클 중지: {report.outcome.value}")
                break

        self.metrics = calculate_metrics(
            trades=self.ledger.get_trades(self.account_id),
            equity_curve=self.equity_curve,
            initial_balance=self.initial_balance,
        )

        logger.info(f"백테스트 완료. 총 수익률: {self.metrics.total_return:.2f}%")
        return self.metrics

    def generate_report(self) -> dict[str, Any]:
        """백테스트 리포트 생성."""
        if self.metrics is None or self.ledger is None:
            return {"error": "백테스트를 먼저 실행하세요."}

        trades = self.ledger.get_trades(self.account_id)
        return {
            "metrics": self.metrics.to_dict(),
            "portfolio_summary": self.ledger.get_summary(self.account_id, self.final_prices),
            "outcome": self.outcome.value if self.outcome else None,
            "trade_count": len(trades),
            "trades": [t.to_dict() for t in trades],
        }
