"""
전략 설정 저장소 추상 클래스 정의.

[ 역할 ]
    계좌별 자동매매 설정(StrategySettings)을 제공.
    설정 변경은 외부(대시보드 등)의 몫이고, 엔진은 읽기 + 활성화 플래그 해제만 한다.

[ 구현체 ]
    - data/memory_store.py::InMemorySettingsStore

[ 호출하는 곳 ]
    - engine/trading_cycle.py → 사이클 시작 시 get_settings(),
      데이터 장애/목표 수익 도달 시 set_active(False)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

MIN_RISK_LEVEL = 1
MAX_RISK_LEVEL = 10


@dataclass
class StrategySettings:
    """계좌별 전략 설정."""
    account_id: str
    is_active: bool = False
    strategy_id: str = "ema_rsi"          # strategies/ 에 등록된 스코어링 프로필 이름
    risk_level: int = 5                   # 1~10, 포지션 크기에 반영
    target_profit: float = 100.0          # 총 자산이 이 값 이상이면 전량 청산 후 중지
    max_daily_loss: float = 50.0          # 당일 실현 손실 한도 (도달 시 신규 매수 중단)
    trading_pairs: list[str] = field(default_factory=list)

    @property
    def bounded_risk_level(self) -> int:
        return max(MIN_RISK_LEVEL, min(MAX_RISK_LEVEL, int(self.risk_level)))


class SettingsStore(ABC):
    """설정 저장소 추상 클래스."""

    @abstractmethod
    def get_settings(self, account_id: str) -> StrategySettings:
        """계좌 설정 조회.

        Raises:
            KeyError: 설정이 없는 계좌
        """
        ...

    @abstractmethod
    def set_active(self, account_id: str, active: bool) -> None:
        """자동매매 활성화 플래그 변경."""
        ...
