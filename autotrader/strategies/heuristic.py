"""
24시간 등락률 기반 휴리스틱 시그널 분석기.

[ 역할 ]
    core/signal_analyzer.py::SignalAnalyzer의 구현체.
    가격 이력 없이 스냅샷 1개(현재가, 24시간 등락률, 거래대금)만으로
    의사 지표를 만들어 매수/매도 조건 개수를 센다.
    정밀한 기술적 지표가 아니라 의도적으로 단순한 경험식이다.

[ 분석 흐름 ]
    analyze() 호출 시:
        1. 의사 오실레이터   ← 등락률 구간표 (급등 = 과매수, 급락 = 과매도)
        2. 모멘텀 (-1 ~ 1)   ← 등락률 / momentum_scale
        3. 거래량 강도       ← 거래대금 / reference_volume
        4. 추세 강도 (1~10)  ← 모멘텀 + 거래량 강도
        5. 매수 조건 5개 / 매도 조건 5개 충족 개수 (buy_score, sell_score)
        6. 종합 점수 = clamp(buy*1.2 - sell*0.8 + trend*0.3 + momentum*5, 1, 10)
        7. 시그널 결정 (위에서부터 먼저 맞는 규칙)
              buy>=4, sell<=3, 종합>=5        → STRONG_BUY
              buy>=3, 종합>=4, 모멘텀>-0.2    → BUY
              sell>=4, 종합<=4                → STRONG_SELL
              sell>=3                         → SELL
              그 외                           → HOLD
        8. 신뢰도 = 우세한 쪽 조건 개수로 정규화 (최대 0.95)

[ 지지/저항 밴드 ]
    등락률로 역산한 24시간 전 가격(open)을 기준으로
    support = open * (1 - band), resistance = open * (1 + band).
    가격이 밴드에서 band * zone_width 이내에 있으면 "근접"으로 본다.

[ 파라미터 ]
    DEFAULT_PARAMS 참고. 각 프로필(ema_rsi.py 등)이 일부를 오버라이드한다.
"""

from typing import Any

from autotrader.core.market_gateway import Instrument
from autotrader.core.signal_analyzer import (
    SignalAnalyzer,
    SignalResult,
    SignalType,
    VolatilityLevel,
)

BUY_CONDITION_COUNT = 5
SELL_CONDITION_COUNT = 5


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class HeuristicSignalAnalyzer(SignalAnalyzer):
    """등락률 휴리스틱 분석기. 상태를 갖지 않는다."""

    DEFAULT_PARAMS = {
        # (상한 등락률, 오실레이터 값): 등락률 < 상한 인 첫 구간의 값
        "oscillator_table": [
            (-8.0, 20.0),
            (-4.0, 30.0),
            (-1.0, 38.0),
            (1.0, 45.0),
            (3.0, 55.0),
            (6.0, 65.0),
            (10.0, 75.0),
        ],
        "oscillator_ceiling": 85.0,         # 10% 이상 급등
        "oversold_level": 45.0,             # 이하면 매수 조건
        "overbought_level": 70.0,           # 이상이면 매도 조건
        "momentum_scale": 10.0,             # 등락률 10% = 모멘텀 1.0
        "reference_volume": 1_000_000.0,    # 거래량 강도 1.0 기준 거래대금
        "max_volume_strength": 3.0,
        "strong_volume": 1.2,
        "weak_volume": 0.5,
        "trend_adequate": 5.0,
        "trend_weak": 4.0,
        "band_pct": 3.0,                    # 지지/저항 밴드 폭 (%)
        "zone_width": 2.0,                  # 근접 판정 폭 (band 배수)
        "volatility_medium": 2.0,           # |등락률| 기준 변동성 등급 경계 (%)
        "volatility_high": 5.0,
        "volatility_high_risk": 10.0,
        "max_confidence": 0.95,
    }

    def __init__(self, params: dict[str, Any] | None = None, name: str = "heuristic"):
        # DEFAULT_PARAMS를 기본으로 하고, 전달된 params로 오버라이드
        merged = {**HeuristicSignalAnalyzer.DEFAULT_PARAMS, **self.DEFAULT_PARAMS, **(params or {})}
        super().__init__(name=name, params=merged)

    # ─── 의사 지표 ──────────────────────────────────────────────────────────

    def oscillator(self, change: float) -> float:
        for upper, value in self.params["oscillator_table"]:
            if change < upper:
                return float(value)
        return float(self.params["oscillator_ceiling"])

    def momentum(self, change: float) -> float:
        return clamp(change / float(self.params["momentum_scale"]), -1.0, 1.0)

    def volume_strength(self, volume: float | None) -> float:
        if volume is None:
            return 1.0
        reference = float(self.params["reference_volume"])
        if reference <= 0:
            return 1.0
        return clamp(volume / reference, 0.0, float(self.params["max_volume_strength"]))

    def trend_strength(self, momentum: float, volume_strength: float) -> float:
        return clamp(5 + momentum * 4 + (min(volume_strength, 2.0) - 1.0) * 1.5, 1.0, 10.0)

    def volatility(self, change: float) -> VolatilityLevel:
        magnitude = abs(change)
        if magnitude >= self.params["volatility_high_risk"]:
            return VolatilityLevel.HIGH_RISK
        if magnitude >= self.params["volatility_high"]:
            return VolatilityLevel.HIGH
        if magnitude >= self.params["volatility_medium"]:
            return VolatilityLevel.MEDIUM
        return VolatilityLevel.LOW

    def bands(self, instrument: Instrument) -> tuple[float, float]:
        """(support, resistance) 반환."""
        open_price = instrument.open_price_24h
        band = float(self.params["band_pct"]) / 100
        return open_price * (1 - band), open_price * (1 + band)

    # ─── 분석 ──────────────────────────────────────────────────────────────

    def analyze(self, instrument: Instrument) -> SignalResult:
        """시세 스냅샷 분석. 같은 입력이면 항상 같은 결과."""
        if instrument.current_price <= 0:
            return SignalResult(
                symbol=instrument.symbol,
                signal=SignalType.HOLD,
                confidence=0.0,
                score=1.0,
                contributing_factors=("가격 정보 없음",),
            )

        change = float(instrument.price_change_24h)
        price = float(instrument.current_price)
        p = self.params

        osc = self.oscillator(change)
        momentum = self.momentum(change)
        vol_strength = self.volume_strength(instrument.volume_24h)
        trend = self.trend_strength(momentum, vol_strength)
        volatility = self.volatility(change)

        support, resistance = self.bands(instrument)
        zone = float(p["band_pct"]) / 100 * float(p["zone_width"])
        near_support = support <= price <= support * (1 + zone)
        near_resistance = resistance * (1 - zone) <= price <= resistance

        buy_conditions = [
            (osc <= p["oversold_level"], f"오실레이터 과매도권 ({osc:.0f})"),
            (momentum >= 0, f"모멘텀 양호 ({momentum:+.2f})"),
            (vol_strength >= p["strong_volume"], f"거래량 강세 ({vol_strength:.2f}x)"),
            (trend >= p["trend_adequate"], f"추세 강도 양호 ({trend:.1f})"),
            (near_support, f"지지선 근접 ({support:.6g})"),
        ]
        sell_conditions = [
            (osc >= p["overbought_level"], f"오실레이터 과매수권 ({osc:.0f})"),
            (momentum < 0, f"모멘텀 약화 ({momentum:+.2f})"),
            (near_resistance, f"저항선 근접 ({resistance:.6g})"),
            (vol_strength < p["weak_volume"], f"거래량 약세 ({vol_strength:.2f}x)"),
            (trend < p["trend_weak"], f"추세 약화 ({trend:.1f})"),
        ]

        buy_score = sum(1 for ok, _ in buy_conditions if ok)
        sell_score = sum(1 for ok, _ in sell_conditions if ok)
        composite = clamp(buy_score * 1.2 - sell_score * 0.8 + trend * 0.3 + momentum * 5, 1.0, 10.0)

        signal = self._select_signal(buy_score, sell_score, composite, momentum)

        if signal in (SignalType.SELL, SignalType.STRONG_SELL):
            factors = tuple(label for ok, label in sell_conditions if ok)
        elif signal.is_buy:
            factors = tuple(label for ok, label in buy_conditions if ok)
        else:
            factors = tuple(label for ok, label in buy_conditions + sell_conditions if ok)

        dominant = max(buy_score, sell_score)
        confidence = min(float(p["max_confidence"]), 0.15 + dominant / BUY_CONDITION_COUNT * 0.8)

        return SignalResult(
            symbol=instrument.symbol,
            signal=signal,
            confidence=round(confidence, 4),
            score=round(composite, 4),
            contributing_factors=factors,
            momentum=momentum,
            trend_strength=trend,
            volume_strength=vol_strength,
            oscillator=osc,
            volatility=volatility,
            buy_score=buy_score,
            sell_score=sell_score,
        )

    @staticmethod
    def _select_signal(buy_score: int, sell_score: int, composite: float, momentum: float) -> SignalType:
        if buy_score >= 4 and sell_score <= 3 and composite >= 5:
            return SignalType.STRONG_BUY
        if buy_score >= 3 and composite >= 4 and momentum > -0.2:
            return SignalType.BUY
        if sell_score >= 4 and composite <= 4:
            return SignalType.STRONG_SELL
        if sell_score >= 3:
            return SignalType.SELL
        return SignalType.HOLD
