"""
시그널 분석기 추상 클래스 정의.

[ 역할 ]
    종목 1개의 시세 스냅샷을 받아 분류된 시그널(강매수~강매도)과 신뢰도를 생성.
    순수 함수여야 한다: 같은 입력이면 항상 같은 결과, 부수효과/I/O 없음.

[ 구현체 ]
    - strategies/heuristic.py::HeuristicSignalAnalyzer (24시간 등락률 기반 휴리스틱)
    - strategies/ema_rsi.py, momentum.py, scalping.py (파라미터만 다른 스코어링 프로필)

[ 호출하는 곳 ]
    - engine/trading_cycle.py에서 사이클마다 종목별 analyze() 호출
    - 결과는 engine/exit_evaluator.py, engine/opportunity_ranker.py로 전달

[ 교체 ]
    실제 지표 계산(RSI, MACD 등)으로 바꾸려면 이 클래스를 상속해 analyze()만 구현하고
    strategies 레지스트리에 등록하면 된다. 호출하는 쪽은 수정할 필요 없음.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from autotrader.core.market_gateway import Instrument


class SignalType(Enum):
    """분석기가 반환하는 시그널 종류."""
    STRONG_BUY = "strong_buy"
    BUY = "buy"
    HOLD = "hold"
    SELL = "sell"
    STRONG_SELL = "strong_sell"

    @property
    def is_buy(self) -> bool:
        return self in (SignalType.STRONG_BUY, SignalType.BUY)


class VolatilityLevel(Enum):
    """24시간 변동폭 기준 변동성 등급."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    HIGH_RISK = "high_risk"


@dataclass(frozen=True)
class SignalResult:
    """analyze()의 반환값."""
    symbol: str
    signal: SignalType
    confidence: float                    # 0 ~ 0.95
    score: float                         # 종합 점수 1 ~ 10
    contributing_factors: tuple[str, ...] = ()
    momentum: float = 0.0                # -1 ~ 1
    trend_strength: float = 5.0          # 1 ~ 10
    volume_strength: float = 1.0         # 기준 거래대금 대비 배수
    oscillator: float = 50.0             # 0 ~ 100, 높을수록 과매수
    volatility: VolatilityLevel = VolatilityLevel.LOW
    buy_score: int = 0
    sell_score: int = 0
    metadata: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)


class SignalAnalyzer(ABC):
    """시그널 분석기 추상 클래스.

    새 분석기를 만들려면 이 클래스를 상속받아 analyze()를 구현하면 된다.
    """

    def __init__(self, name: str, params: dict[str, Any] | None = None):
        self.name = name
        self.params = params or {}

    @abstractmethod
    def analyze(self, instrument: Instrument) -> SignalResult:
        """시세 스냅샷 1개를 분석해 시그널 생성.

        Args:
            instrument: 종목 시세 스냅샷

        Returns:
            SignalResult: 시그널, 신뢰도, 점수, 근거
        """
        ...
