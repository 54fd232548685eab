"""
모멘텀 스코어링 프로필.

[ 역할 ]
    상승 흐름에 올라타는 쪽으로 기본 휴리스틱을 조정.
    모멘텀 민감도를 높이고, 약한 상승(등락률 3% 미만)까지 과매도권으로 본다.
"""

from typing import Any

from autotrader.strategies import register
from autotrader.strategies.heuristic import HeuristicSignalAnalyzer


@register("momentum")
class MomentumProfile(HeuristicSignalAnalyzer):
    """모멘텀 추종 프로필."""

    DEFAULT_PARAMS = {
        "momentum_scale": 8.0,      # 등락률 8% = 모멘텀 1.0
        "oversold_level": 55.0,
        "strong_volume": 1.1,
        "trend_adequate": 5.5,
    }

    def __init__(self, params: dict[str, Any] | None = None):
        super().__init__(params=params, name="momentum")
