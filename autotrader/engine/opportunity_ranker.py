"""
신규 매수 후보 선정 모듈.

[ 역할 ]
    전체 종목 시세 + 종목별 시그널 + 가용 잔고를 받아
    이번 사이클에 매수할 후보(최대 max_candidates개)와 종목별 투자 금액을 결정.

[ 선정 흐름 ]
    rank() 호출 시:
        1. 필터: BUY/STRONG_BUY, 신뢰도 > min_confidence, 종합 점수 > min_score
        2. 수익 잠재력 점수 (요소별 상한이 있는 가중합)
              모멘텀      최대 25
              추세 강도   최대 25
              거래량 강도 최대 20
              변동성      MEDIUM 15 / HIGH 10 / LOW 8 / HIGH_RISK 0
              신뢰도      최대 15
        3. 잠재력 내림차순 정렬 → 상위 max_candidates개
        4. 종목별 투자 금액 산정 (아래) → min_investment 미만이면 건너뜀

[ 투자 금액 산정 ]
    사용 가능 금액 = 남은 잔고 * usable_balance_ratio
    비율 구간:  신뢰도 >= 0.85 AND 점수 >= 7 → 30%
               신뢰도 >= 0.75 OR  점수 >= 6 → 20%
               그 외                       → 12%
    비율 *= (0.5 + risk_level / 10)
    금액 = min(사용 가능 금액 * 비율, max_trade_amount) * cost_buffer
    후보를 하나 정할 때마다 남은 잔고에서 차감 (한 사이클 내 과다 배분 방지)

[ 호출하는 곳 ]
    - engine/trading_cycle.py에서 잔고가 최소 거래 금액을 넘을 때 호출
"""

from dataclasses import dataclass
from typing import Any

from autotrader.core.market_gateway import Instrument
from autotrader.core.settings_store import MAX_RISK_LEVEL, MIN_RISK_LEVEL
from autotrader.core.signal_analyzer import SignalResult, VolatilityLevel


@dataclass(frozen=True)
class BuyCandidate:
    """매수 후보."""
    instrument: Instrument
    signal: SignalResult
    invest_amount: float
    profit_potential: float

    @property
    def symbol(self) -> str:
        return self.instrument.symbol

    @property
    def quantity(self) -> float:
        return self.invest_amount / self.instrument.current_price

    @property
    def reason(self) -> str:
        factors = ", ".join(self.signal.contributing_factors)
        return f"{self.signal.signal.value} (신뢰도 {self.signal.confidence:.0%}): {factors}"


class OpportunityRanker:
    """매수 후보 선정기. params로 임계값/비율 오버라이드 가능."""

    DEFAULT_PARAMS = {
        "max_candidates": 3,
        "min_confidence": 0.6,
        "min_score": 4.0,
        "usable_balance_ratio": 0.95,
        "max_trade_amount": 30.0,        # 1회 매수 상한 (절대 금액)
        "cost_buffer": 0.995,            # 수수료 여유분
        "min_investment": 1.0,           # 이 금액 미만이면 매수하지 않음
        "high_conviction_fraction": 0.30,
        "medium_conviction_fraction": 0.20,
        "base_fraction": 0.12,
        "volatility_weights": {
            "low": 8.0,
            "medium": 15.0,
            "high": 10.0,
            "high_risk": 0.0,
        },
    }

    def __init__(self, params: dict[str, Any] | None = None):
        self.params = {**self.DEFAULT_PARAMS, **(params or {})}

    def is_eligible(self, signal: SignalResult) -> bool:
        return (
            signal.signal.is_buy
            and signal.confidence > self.params["min_confidence"]
            and signal.score > self.params["min_score"]
        )

    def profit_potential(self, signal: SignalResult) -> float:
        """수익 잠재력 점수 (0 ~ 100)."""
        momentum_part = min(max(signal.momentum, 0.0) * 25, 25.0)
        trend_part = min(signal.trend_strength / 10 * 25, 25.0)
        volume_part = min(signal.volume_strength / 2, 1.0) * 20
        volatility_part = float(self.params["volatility_weights"].get(signal.volatility.value, 0.0))
        confidence_part = min(signal.confidence, 1.0) * 15
        return momentum_part + trend_part + volume_part + volatility_part + confidence_part

    def position_fraction(self, signal: SignalResult, risk_level: int) -> float:
        p = self.params
        if signal.confidence >= 0.85 and signal.score >= 7:
            fraction = p["high_conviction_fraction"]
        elif signal.confidence >= 0.75 or signal.score >= 6:
            fraction = p["medium_conviction_fraction"]
        else:
            fraction = p["base_fraction"]
        risk = max(MIN_RISK_LEVEL, min(MAX_RISK_LEVEL, int(risk_level)))
        return fraction * (0.5 + risk / 10)

    def rank(
        self,
        instruments: list[Instrument],
        signals: dict[str, SignalResult],
        available_balance: float,
        risk_level: int = 5,
    ) -> list[BuyCandidate]:
        """매수 후보 선정.

        Args:
            instruments: 이번 사이클의 시세 스냅샷
            signals: {symbol: SignalResult}
            available_balance: 주문 가능 현금 (main_balance)
            risk_level: 1~10, 클수록 큰 비율로 매수

        Returns:
            투자 금액이 정해진 후보 리스트 (잠재력 내림차순, 최대 max_candidates개)
        """
        p = self.params
        scored: list[tuple[float, Instrument, SignalResult]] = []
        for instrument in instruments:
            signal = signals.get(instrument.symbol)
            if signal is None or instrument.current_price <= 0 or not self.is_eligible(signal):
                continue
            scored.append((self.profit_potential(signal), instrument, signal))

        scored.sort(key=lambda item: item[0], reverse=True)

        remaining = available_balance
        candidates: list[BuyCandidate] = []
        for potential, instrument, signal in scored[: int(p["max_candidates"])]:
            usable = remaining * p["usable_balance_ratio"]
            amount = min(usable * self.position_fraction(signal, risk_level), p["max_trade_amount"])
            amount *= p["cost_buffer"]
            if amount < p["min_investment"]:
                continue
            candidates.append(BuyCandidate(instrument, signal, amount, potential))
            remaining -= amount

        return candidates
