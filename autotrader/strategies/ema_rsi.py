"""
기본 스코어링 프로필 (ema_rsi).

[ 역할 ]
    HeuristicSignalAnalyzer의 기본 파라미터를 그대로 사용하는 프로필.
    계좌 설정의 strategy_id 기본값이다.
"""

from typing import Any

from autotrader.strategies import register
from autotrader.strategies.heuristic import HeuristicSignalAnalyzer


@register("ema_rsi")
class EmaRsiProfile(HeuristicSignalAnalyzer):
    """과매도 + 거래량 확인 위주의 균형형 프로필."""

    DEFAULT_PARAMS: dict[str, Any] = {}

    def __init__(self, params: dict[str, Any] | None = None):
        super().__init__(params=params, name="ema_rsi")
