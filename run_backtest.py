"""
백테스트 실행 스크립트.

[ 사용법 ]
    # 기본 실행 (config.yaml의 프로필, 샘플 데이터)
    python run_backtest.py

    # 프로필 지정
    python run_backtest.py --strategy momentum

    # 파라미터 오버라이드
    python run_backtest.py --strategy ema_rsi -p oversold_level=40 -p band_pct=2.5

    # 스냅샷 CSV 사용 (columns: timestamp, symbol, current_price, price_change_24h, volume_24h)
    python run_backtest.py --data snapshots.csv

    # 여러 프로필 비교
    python run_backtest.py --compare ema_rsi momentum scalping

    # 등록된 프로필 목록 확인
    python run_backtest.py --list
"""

import argparse
from pathlib import Path

import pandas as pd

from autotrader.backtest.engine import BacktestEngine
from autotrader.backtest.metrics import BacktestMetrics
from autotrader.backtest.sample_data import generate_sample_snapshots
from autotrader.core.exceptions import ConfigurationError
from autotrader.strategies import list_strategies
from autotrader.utils.config import Config
from autotrader.utils.logger import setup_logger


def parse_param(param_str: str) -> tuple[str, object]:
    """'key=value' 문자열을 파싱하여 (key, value) 반환. 숫자면 자동 변환."""
    key, _, value = param_str.partition("=")
    key = key.strip()
    value = value.strip()

    try:
        if "." in value:
            return key, float(value)
        return key, int(value)
    except ValueError:
        if value.lower() in ("true", "yes"):
            return key, True
        if value.lower() in ("false", "no"):
            return key, False
        return key, value


def load_data(config: Config, data_file: str | None) -> pd.DataFrame:
    """스냅샷 이력 로드. 파일이 없으면 샘플 데이터 생성."""
    path = data_file or config.backtest.data_file
    if path:
        print(f"스냅샷 파일 로드: {path}")
        return pd.read_csv(path, parse_dates=["timestamp"])

    symbols = config.strategy.universe or None
    print("샘플 데이터 생성 중...")
    df = generate_sample_snapshots(symbols=symbols, steps=config.backtest.steps, seed=config.backtest.seed)
    print(f"  {df['symbol'].nunique()}개 종목, {df['timestamp'].nunique()}개 시점")
    return df


def run_single(config: Config, strategy_name: str, params: dict, data: pd.DataFrame) -> tuple[BacktestMetrics, dict]:
    """단일 프로필 백테스트 실행."""
    engine = BacktestEngine(
        initial_balance=config.backtest.initial_balance,
        slippage_rate=config.backtest.slippage_rate,
        risk_level=config.account.risk_level,
        min_trading_balance=config.engine.min_trading_balance,
        exit_params=config.exit,
        ranker_params=config.ranker,
    )
    metrics = engine.run_backtest(strategy_name, data, analyzer_params=params)
    return metrics, engine.generate_report()


def print_single_result(strategy_name: str, metrics: BacktestMetrics, report: dict):
    """단일 프로필 결과 출력."""
    print(f"\n[프로필: {strategy_name}]")
    print(metrics.summary())

    summary = report["portfolio_summary"]
    print(f"\n현금 잔고:   {summary['main_balance']:.4f}")
    print(f"실현 수익:   {summary['profit_balance']:.4f}")
    print(f"보유 평가:   {summary['positions_value']:.4f} ({summary['num_positions']}종목)")

    sells = [t for t in report["trades"] if t["type"] == "sell"]
    if sells:
        print("\n최근 매도 거래 (최대 5건):")
        for t in sells[-5:]:
            print(f"  {t['symbol']} {t['amount']:.6f} @ {t['price']:.6g} -> {t['pnl']:+.4f} ({t['reason']})")


def print_comparison(results: dict[str, BacktestMetrics], config: Config):
    """여러 프로필 비교 결과 출력."""
    names = list(results.keys())
    col_width = max(14, max(len(n) for n in names) + 2)
    line = "=" * (20 + col_width * len(names))

    print(f"\n{line}")
    print(f"프로필 비교 결과 (초기 자금 {config.backtest.initial_balance:.2f})")
    print(line)

    header = f"{'':>20}" + "".join(f"{n:>{col_width}}" for n in names)
    print(header)
    print("-" * len(header))

    rows = [
        ("총 수익률", lambda m: f"{m.total_return:.2f}%"),
        ("샤프 비율", lambda m: f"{m.sharpe_ratio:.2f}"),
        ("최대 낙폭(MDD)", lambda m: f"{m.max_drawdown:.2f}%"),
        ("매수 횟수", lambda m: f"{m.buy_trades}"),
        ("매도 횟수", lambda m: f"{m.total_trades}"),
        ("승률", lambda m: f"{m.win_rate:.1f}%"),
        ("수익 팩터", lambda m: f"{m.profit_factor:.2f}"),
        ("실현 손익", lambda m: f"{m.realized_pnl:.4f}"),
        ("최대 연속 수익", lambda m: f"{m.max_consecutive_wins}"),
        ("최대 연속 손실", lambda m: f"{m.max_consecutive_losses}"),
    ]
    for label, fmt in rows:
        print(f"{label:>20}" + "".join(f"{fmt(results[n]):>{col_width}}" for n in names))

    print(line)


def main():
    parser = argparse.ArgumentParser(description="자동매매 엔진 백테스트 실행")
    parser.add_argument("--config", type=str, default="config.yaml", help="설정 파일 경로")
    parser.add_argument("--strategy", type=str, default=None, help="프로필 이름 (config.yaml 대신 지정)")
    parser.add_argument("-p", "--param", action="append", default=[], help="파라미터 오버라이드 (예: -p band_pct=2.5)")
    parser.add_argument("--data", type=str, default=None, help="스냅샷 CSV 경로 (없으면 샘플 데이터)")
    parser.add_argument("--compare", nargs="+", metavar="STRATEGY", help="여러 프로필 비교 (예: --compare ema_rsi momentum)")
    parser.add_argument("--list", action="store_true", help="등록된 프로필 목록 출력")
    args = parser.parse_args()

    if args.list:
        print("등록된 프로필:")
        for name in list_strategies():
            print(f"  - {name}")
        return

    config_path = Path(args.config)
    if config_path.exists():
        config = Config.from_yaml(config_path)
    else:
        print(f"설정 파일 없음: {config_path}, 기본값 사용")
        config = Config()

    setup_logger(level=config.log_level, log_dir=config.log_dir)

    data = load_data(config, args.data)
    if data.empty:
        print("오류: 백테스트할 데이터가 없습니다.")
        return

    # ─── 비교 모드 ───────────────────────────────────────────────────────
    if args.compare:
        print(f"\n{len(args.compare)}개 프로필 비교 실행...")
        results = {}
        for name in args.compare:
            print(f"\n--- {name} 실행 중 ---")
            try:
                metrics, _ = run_single(config, name, config.strategy.params, data)
            except ConfigurationError as e:
                print(f"  [SKIP] {e}")
                continue
            results[name] = metrics
        if results:
            print_comparison(results, config)
        return

    # ─── 단일 실행 모드 ─────────────────────────────────────────────────
    strategy_name = args.strategy or config.strategy.name
    params = dict(config.strategy.params)
    for p in args.param:
        key, value = parse_param(p)
        params[key] = value

    print(f"\n프로필: {strategy_name}")
    if args.param:
        print(f"파라미터 오버라이드: {dict(parse_param(p) for p in args.param)}")

    try:
        metrics, report = run_single(config, strategy_name, params, data)
    except ConfigurationError as e:
        print(f"오류: {e}")
        return
    print_single_result(strategy_name, metrics, report)


if __name__ == "__main__":
    main()
