"""
자동매매 엔진 실행 스크립트.

[ 사용법 ]
    # 기본 실행 (config.yaml, 샘플 시세를 재생하는 Mock 게이트웨이)
    python run_engine.py

    # 사이클 간격 / 프로필 지정
    python run_engine.py --interval 5 --strategy momentum

    # 스냅샷 CSV 재생
    python run_engine.py --data snapshots.csv

    Ctrl+C로 종료. 데이터 장애나 목표 수익 도달 시 스케줄러가 스스로 멈추면
    스크립트도 종료된다.

[ 실전 교체 ]
    MockMarketGateway 대신 core/market_gateway.py::MarketGateway 구현체,
    메모리 저장소 대신 DB 연동 저장소를 넣으면 된다.
"""

import argparse
import logging
import time
from pathlib import Path

import pandas as pd

from autotrader.backtest.sample_data import generate_sample_snapshots
from autotrader.brokers.mock_gateway import MockMarketGateway
from autotrader.core.settings_store import StrategySettings
from autotrader.data.ledger import Ledger
from autotrader.data.memory_store import InMemoryLedgerStore, InMemorySettingsStore
from autotrader.engine.events import EVENT_BOT_STATUS, EVENT_PORTFOLIO, EventBroadcaster
from autotrader.engine.exit_evaluator import ExitEvaluator
from autotrader.engine.opportunity_ranker import OpportunityRanker
from autotrader.engine.order_executor import OrderExecutor
from autotrader.engine.scheduler import SchedulerRegistry
from autotrader.engine.trading_cycle import TradingCycle
from autotrader.notifiers.telegram import build_notifier
from autotrader.utils.config import Config
from autotrader.utils.logger import setup_logger


def log_event(event_type: str, payload: dict) -> None:
    """portfolio / bot_status 이벤트를 로그로 남기는 구독자."""
    logger = logging.getLogger("autotrader.events")
    if event_type == EVENT_PORTFOLIO:
        logger.info(
            f"[{payload['account_id']}] 총 자산 {payload['total_value']:.4f} "
            f"(현금 {payload['main_balance']:.4f}, 수익 {payload['profit_balance']:.4f}, "
            f"보유 {payload['num_positions']}종목)"
        )
    elif event_type == EVENT_BOT_STATUS:
        logger.warning(f"[{payload['account_id']}] 자동매매 상태 변경: {payload}")


def build_engine(config: Config, history: pd.DataFrame) -> tuple[SchedulerRegistry, Ledger, MockMarketGateway]:
    """설정으로 엔진 구성요소 조립 + 계좌 온보딩."""
    account = config.account

    ledger_store = InMemoryLedgerStore()
    ledger_store.create_account(account.account_id, main_balance=account.initial_balance)
    settings_store = InMemorySettingsStore()
    settings_store.create_settings(StrategySettings(
        account_id=account.account_id,
        is_active=True,
        strategy_id=config.strategy.name,
        risk_level=account.risk_level,
        target_profit=account.target_profit,
        max_daily_loss=account.max_daily_loss,
        trading_pairs=list(account.trading_pairs),
    ))

    gateway = MockMarketGateway(slippage_rate=config.engine.slippage_rate, auto_advance=True)
    gateway.load_history(history)

    ledger = Ledger(ledger_store)
    broadcaster = EventBroadcaster()
    broadcaster.subscribe(log_event)
    notifier = build_notifier(config.notification.telegram_token, config.notification.telegram_chat_id)

    cycle = TradingCycle(
        settings_store=settings_store,
        gateway=gateway,
        ledger=ledger,
        executor=OrderExecutor(gateway, ledger, broadcaster, notifier),
        broadcaster=broadcaster,
        exit_evaluator=ExitEvaluator(config.exit),
        ranker=OpportunityRanker(config.ranker),
        universe=list(config.strategy.universe),
        min_trading_balance=config.engine.min_trading_balance,
        analyzer_params=config.strategy.params,
    )
    return SchedulerRegistry(cycle, config.engine.interval_seconds), ledger, gateway


def main():
    parser = argparse.ArgumentParser(description="자동매매 엔진 실행")
    parser.add_argument("--config", type=str, default="config.yaml", help="설정 파일 경로")
    parser.add_argument("--strategy", type=str, default=None, help="프로필 이름 (config.yaml 대신 지정)")
    parser.add_argument("--interval", type=float, default=None, help="사이클 간격 (초)")
    parser.add_argument("--data", type=str, default=None, help="재생할 스냅샷 CSV 경로")
    args = parser.parse_args()

    config_path = Path(args.config)
    config = Config.from_yaml(config_path) if config_path.exists() else Config()
    if args.strategy:
        config.strategy.name = args.strategy
    if args.interval:
        config.engine.interval_seconds = args.interval

    logger = setup_logger(level=config.log_level, log_dir=config.log_dir)

    if args.data:
        history = pd.read_csv(args.data, parse_dates=["timestamp"])
    else:
        history = generate_sample_snapshots(symbols=config.strategy.universe or None, steps=config.backtest.steps)

    registry, ledger, gateway = build_engine(config, history)
    account_id = config.account.account_id

    logger.info(f"엔진 시작: 계좌 {account_id}, 프로필 {config.strategy.name}")
    registry.start(account_id)
    try:
        while registry.is_running(account_id):
            time.sleep(1.0)
    except KeyboardInterrupt:
        logger.info("중단 요청")
    finally:
        registry.stop_all()

    summary = ledger.get_summary(account_id, gateway.prices())
    logger.info(
        f"종료: 총 자산 {summary['total_value']:.4f}, 거래 {len(ledger.get_trades(account_id))}건"
    )


if __name__ == "__main__":
    main()
