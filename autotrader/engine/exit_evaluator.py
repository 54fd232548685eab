"""
보유 포지션 청산(매도) 판단 모듈.

[ 역할 ]
    보유 포지션 1개 + 현재 시세 + 시그널 분석 결과를 받아
    매도 여부와 매도 비율을 결정. 상태를 갖지 않는 순수 계산.

[ 순수익률 ]
    cost   = average_price * (1 + fee_rate + spread_estimate)   (왕복 거래 비용 반영)
    net(%) = (current_price - cost) / cost * 100

[ 단계별 정책 (위에서부터 먼저 맞는 단계 적용) ]
    1. net >= 15%                          → 100% 매도
    2. net >= 8%   AND 모멘텀 < -0.3        → 80% 매도
    3. net >= 5%   AND 변동성 HIGH_RISK     → 75% 매도
    4. net >= 3.5% AND 종합 점수 <= 2       → 90% 매도
    5. STRONG_SELL AND net > 1.5%          → 90% 매도
    6. 트레일링 스톱 이탈 AND net > 1.0%    → 90% 매도
    7. 그 외                               → 보유

    손절 단계는 없다. 손실 포지션은 목표 수익 도달 시 전량 청산으로만 정리된다.

[ 트레일링 스톱 ]
    기준 고점 = max(현재가, 24시간 전 가격)
    스톱 가격 = 기준 고점 * (1 - trail), trail은 변동성 등급별
    LOW 1.5% / MEDIUM 3% / HIGH 5% / HIGH_RISK 8%

[ 호출하는 곳 ]
    - engine/trading_cycle.py에서 사이클마다 보유 포지션별로 evaluate() 호출
"""

from dataclasses import dataclass
from typing import Any, Optional

from autotrader.core.ledger_store import Position
from autotrader.core.market_gateway import Instrument
from autotrader.core.signal_analyzer import SignalResult, SignalType, VolatilityLevel


@dataclass(frozen=True)
class ExitDecision:
    """evaluate()의 반환값."""
    should_sell: bool
    sell_ratio: float = 0.0          # (0, 1], 보유 수량 대비 매도 비율
    reason: str = ""
    tier: Optional[int] = None       # 적용된 단계 (보유면 None)
    net_profit_pct: float = 0.0

    @classmethod
    def hold(cls, net_profit_pct: float = 0.0, reason: str = "보유 유지") -> "ExitDecision":
        return cls(should_sell=False, reason=reason, net_profit_pct=net_profit_pct)


class ExitEvaluator:
    """단계별 익절 정책. params로 임계값 오버라이드 가능."""

    DEFAULT_PARAMS = {
        "fee_rate": 0.001,               # 왕복 수수료 추정
        "spread_estimate": 0.001,        # 호가 스프레드 추정
        "full_take_profit": 15.0,
        "momentum_take_profit": 8.0,
        "momentum_reversal": -0.3,
        "volatility_take_profit": 5.0,
        "weak_score_take_profit": 3.5,
        "weak_score": 2.0,
        "strong_sell_min_profit": 1.5,
        "trailing_min_profit": 1.0,
        "trailing_stop_pct": {
            "low": 1.5,
            "medium": 3.0,
            "high": 5.0,
            "high_risk": 8.0,
        },
    }

    def __init__(self, params: dict[str, Any] | None = None):
        self.params = {**self.DEFAULT_PARAMS, **(params or {})}

    @property
    def cost_rate(self) -> float:
        return float(self.params["fee_rate"]) + float(self.params["spread_estimate"])

    def net_profit_pct(self, average_price: float, current_price: float) -> float:
        """거래 비용을 반영한 순수익률 (%)."""
        cost = average_price * (1 + self.cost_rate)
        if cost <= 0:
            return 0.0
        return (current_price - cost) / cost * 100

    def trailing_stop_price(self, instrument: Instrument, volatility: VolatilityLevel) -> float:
        reference_high = max(instrument.current_price, instrument.open_price_24h)
        trail = float(self.params["trailing_stop_pct"][volatility.value]) / 100
        return reference_high * (1 - trail)

    def evaluate(self, position: Position, instrument: Instrument, signal: SignalResult) -> ExitDecision:
        """포지션 청산 판단.

        Args:
            position: 보유 포지션
            instrument: 같은 종목의 현재 시세
            signal: 같은 시세에 대한 분석 결과

        Returns:
            ExitDecision: should_sell=False면 보유
        """
        if position.is_closed or instrument.current_price <= 0:
            return ExitDecision.hold(reason="평가 불가")

        p = self.params
        price = instrument.current_price
        net = self.net_profit_pct(position.average_price, price)

        if net >= p["full_take_profit"]:
            return self._sell(1, 1.0, f"순수익 {net:.2f}% - 전량 익절", net)

        if net >= p["momentum_take_profit"] and signal.momentum < p["momentum_reversal"]:
            return self._sell(2, 0.8, f"순수익 {net:.2f}% + 모멘텀 반전 ({signal.momentum:+.2f})", net)

        if net >= p["volatility_take_profit"] and signal.volatility == VolatilityLevel.HIGH_RISK:
            return self._sell(3, 0.75, f"순수익 {net:.2f}% + 고위험 변동성", net)

        if net >= p["weak_score_take_profit"] and signal.score <= p["weak_score"]:
            return self._sell(4, 0.9, f"순수익 {net:.2f}% + 종합 점수 약화 ({signal.score:.1f})", net)

        if signal.signal == SignalType.STRONG_SELL and net > p["strong_sell_min_profit"]:
            return self._sell(5, 0.9, f"강한 매도 시그널 + 순수익 {net:.2f}%", net)

        stop_price = self.trailing_stop_price(instrument, signal.volatility)
        if price < stop_price and net > p["trailing_min_profit"]:
            return self._sell(6, 0.9, f"트레일링 스톱 이탈 ({stop_price:.6g}) + 순수익 {net:.2f}%", net)

        return ExitDecision.hold(net_profit_pct=net)

    @staticmethod
    def _sell(tier: int, ratio: float, reason: str, net: float) -> ExitDecision:
        return ExitDecision(should_sell=True, sell_ratio=ratio, reason=reason, tier=tier, net_profit_pct=net)
