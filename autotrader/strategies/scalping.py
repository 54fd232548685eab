"""
스캘핑 스코어링 프로필.

[ 역할 ]
    좁은 지지/저항 밴드와 낮은 변동성 경계로 작은 움직임에 반응하도록 조정.
"""

from typing import Any

from autotrader.strategies import register
from autotrader.strategies.heuristic import HeuristicSignalAnalyzer


@register("scalping")
class ScalpingProfile(HeuristicSignalAnalyzer):
    """단타 프로필."""

    DEFAULT_PARAMS = {
        "band_pct": 1.5,
        "momentum_scale": 5.0,
        "volatility_medium": 1.0,
        "volatility_high": 3.0,
        "volatility_high_risk": 7.0,
    }

    def __init__(self, params: dict[str, Any] | None = None):
        super().__init__(params=params, name="scalping")
