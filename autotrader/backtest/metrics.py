"""
백테스트 성과 지표 계산 모듈.

[ 역할 ]
    백테스트 결과(거래 기록 + 시점별 총 자산)를 받아 성과 지표를 계산.
    calculate_metrics() 함수가 핵심.

[ 계산하는 지표 ]
    - 총 수익률 / 연환산 수익률
    - 샤프 비율 (위험 대비 수익)
    - MDD (최대 낙폭)
    - 승률, 평균 수익/손실, 수익 팩터 (매도 거래의 pnl 기준)
    - 연속 승/패

[ 호출하는 곳 ]
    - backtest/engine.py::BacktestEngine.run_backtest() 완료 시 호출

[ 입력 데이터 ]
    - trades: Ledger.get_trades() (매도 거래만 손익 분석에 사용)
    - equity_curve: engine.py에서 시점마다 기록한 총 자산 리스트
"""

from dataclasses import asdict, dataclass
from typing import Any

import numpy as np

from autotrader.core.ledger_store import Trade, TradeType

HOURS_PER_YEAR = 24 * 365


@dataclass
class BacktestMetrics:
    """백테스트 성과 지표. summary()로 포맷된 리포트 출력 가능."""
    total_return: float = 0.0         # 총 수익률 (%)
    annual_return: float = 0.0        # 연환산 수익률 (%)
    sharpe_ratio: float = 0.0         # 샤프 비율 (1 이상 양호)
    max_drawdown: float = 0.0         # 최대 낙폭 MDD (%)
    win_rate: float = 0.0             # 승률 (%)
    avg_profit: float = 0.0           # 수익 거래 평균 이익
    avg_loss: float = 0.0             # 손실 거래 평균 손실
    profit_factor: float = 0.0        # 총이익 / 총손실 (1 이상이면 수익)
    realized_pnl: float = 0.0         # 매도 거래 pnl 합계
    buy_trades: int = 0               # 매수 거래 횟수
    total_trades: int = 0             # 매도 거래 횟수
    winning_trades: int = 0
    losing_trades: int = 0
    max_consecutive_wins: int = 0
    max_consecutive_losses: int = 0

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리 변환."""
        return asdict(self)

    def summary(self) -> str:
        """성과 요약 문자열."""
        lines = [
            "=" * 50,
            "백테스트 성과 리포트",
            "=" * 50,
            f"총 수익률:       {self.total_return:>10.2f}%",
            f"연환산 수익률:    {self.annual_return:>10.2f}%",
            f"샤프 비율:       {self.sharpe_ratio:>10.2f}",
            f"최대 낙폭(MDD):  {self.max_drawdown:>10.2f}%",
            "-" * 50,
            f"매수 횟수:       {self.buy_trades:>10d}",
            f"매도 횟수:       {self.total_trades:>10d}",
            f"승률:            {self.win_rate:>10.2f}%",
            f"실현 손익:       {self.realized_pnl:>10.4f}",
            f"평균 수익:       {self.avg_profit:>10.4f}",
            f"평균 손실:       {self.avg_loss:>10.4f}",
            f"수익 팩터:       {self.profit_factor:>10.2f}",
            "-" * 50,
            f"최대 연속 수익:  {self.max_consecutive_wins:>10d}",
            f"최대 연속 손실:  {self.max_consecutive_losses:>10d}",
            "=" * 50,
        ]
        return "\n".join(lines)


def _max_streaks(pnls: list[float]) -> tuple[int, int]:
    wins = losses = max_wins = max_losses = 0
    for pnl in pnls:
        if pnl > 0:
            wins, losses = wins + 1, 0
            max_wins = max(max_wins, wins)
        else:
            wins, losses = 0, losses + 1
            max_losses = max(max_losses, losses)
    return max_wins, max_losses


def calculate_metrics(
    trades: list[Trade],
    equity_curve: list[float],
    initial_balance: float,
    periods_per_year: int = HOURS_PER_YEAR,
    risk_free_rate: float = 0.0,
) -> BacktestMetrics:
    """성과 지표 계산.

    Args:
        trades: 거래 기록 (매수+매도 전체)
        equity_curve: 시점별 총 자산 (현금 + 실현 수익 + 포지션 평가)
        initial_balance: 초기 자금
        periods_per_year: 연환산 기준 시점 수 (1시간 간격이면 8760)
        risk_free_rate: 연 무위험 수익률
    """
    metrics = BacktestMetrics()
    metrics.buy_trades = sum(1 for t in trades if t.trade_type == TradeType.BUY)

    if equity_curve and initial_balance > 0:
        values = np.asarray(equity_curve, dtype=float)
        final_value = float(values[-1])
        metrics.total_return = (final_value - initial_balance) / initial_balance * 100

        years = len(values) / periods_per_year
        if years > 0 and final_value > 0:
            try:
                metrics.annual_return = ((final_value / initial_balance) ** (1 / years) - 1) * 100
            except OverflowError:
                metrics.annual_return = float("inf")

        # 샤프 = (평균 초과수익 / 표준편차) * sqrt(연간 시점 수)
        if len(values) > 1:
            prev = values[:-1]
            returns = np.diff(values)[prev > 0] / prev[prev > 0]
            excess = returns - risk_free_rate / periods_per_year
            if excess.size and np.std(excess) > 0:
                metrics.sharpe_ratio = float(np.mean(excess) / np.std(excess) * np.sqrt(periods_per_year))

        # MDD: 누적 고점 대비 최대 하락폭
        peaks = np.maximum.accumulate(values)
        drawdowns = np.where(peaks > 0, (peaks - values) / peaks * 100, 0.0)
        metrics.max_drawdown = float(drawdowns.max())

    # ─── 거래 기반 지표 (매도 거래만) ───────────────────────────────────
    pnls = [t.pnl for t in trades if t.trade_type == TradeType.SELL and t.pnl is not None]
    metrics.total_trades = len(pnls)
    if not pnls:
        return metrics

    winners = [p for p in pnls if p > 0]
    losers = [p for p in pnls if p <= 0]
    metrics.winning_trades = len(winners)
    metrics.losing_trades = len(losers)
    metrics.win_rate = len(winners) / len(pnls) * 100
    metrics.realized_pnl = sum(pnls)
    if winners:
        metrics.avg_profit = sum(winners) / len(winners)
    if losers:
        metrics.avg_loss = sum(losers) / len(losers)

    total_loss = abs(sum(losers))
    metrics.profit_factor = sum(winners) / total_loss if total_loss > 0 else float("inf")
    metrics.max_consecutive_wins, metrics.max_consecutive_losses = _max_streaks(pnls)
    return metrics
