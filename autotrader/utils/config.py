"""
설정 관리 모듈.

[ 역할 ]
    config.yaml (또는 .json) 파일을 파싱하여 Config 객체로 변환.
    분석 프로필, 엔진 주기, 청산/매수 파라미터, 계좌 온보딩 기본값,
    알림 채널, 백테스트, 로깅 설정을 통합 관리.

[ 설정 파일 구조 (config.yaml) ]
    strategy:         → StrategyConfig (프로필 이름, 종목 목록, 분석 파라미터)
    engine:           → EngineConfig (사이클 간격, 최소 거래 금액)
    exit:             → ExitEvaluator.DEFAULT_PARAMS 오버라이드
    ranker:           → OpportunityRanker.DEFAULT_PARAMS 오버라이드
    account:          → AccountConfig (온보딩 시 계좌/설정 기본값)
    notification:     → NotificationConfig (텔레그램)
    backtest:         → BacktestConfig
    log_level:        → "INFO" / "DEBUG"
    log_dir:          → 로그 디렉토리 경로

[ 환경 변수 ]
    notification 섹션이 비어 있으면 TELEGRAM_BOT_TOKEN, TELEGRAM_CHAT_ID 사용

[ 호출하는 곳 ]
    - run_engine.py, run_backtest.py에서 Config.from_yaml()로 로드
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


@dataclass
class StrategyConfig:
    """분석 프로필 설정. config.yaml의 strategy 섹션에 대응.

    프로필별 파라미터는 params dict에 자유롭게 넣는다.
    각 프로필의 DEFAULT_PARAMS가 기본값 역할을 하므로,
    여기서는 오버라이드할 값만 지정하면 된다.
    """
    name: str = "ema_rsi"
    universe: list[str] = field(default_factory=list)
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class EngineConfig:
    """사이클 실행 설정. config.yaml의 engine 섹션에 대응."""
    interval_seconds: float = 30.0
    min_trading_balance: float = 5.0   # 잔고가 이 금액 이하면 신규 매수 생략
    slippage_rate: float = 0.0         # Mock 게이트웨이 슬리피지


@dataclass
class AccountConfig:
    """계좌 온보딩 기본값. config.yaml의 account 섹션에 대응."""
    account_id: str = "default"
    initial_balance: float = 100.0
    risk_level: int = 5
    target_profit: float = 130.0
    max_daily_loss: float = 50.0
    trading_pairs: list[str] = field(default_factory=list)


@dataclass
class NotificationConfig:
    """알림 설정. config.yaml의 notification 섹션에 대응."""
    telegram_token: str = ""
    telegram_chat_id: str = ""


@dataclass
class BacktestConfig:
    """백테스트 설정. config.yaml의 backtest 섹션에 대응."""
    steps: int = 500                   # 샘플 데이터 시점 수
    seed: int = 42
    initial_balance: float = 100.0
    slippage_rate: float = 0.001       # 0.1%
    data_file: str = ""                # 스냅샷 CSV (비어 있으면 샘플 데이터)


def _section(dataclass_type, data: dict[str, Any] | None):
    """dataclass에 정의된 키만 골라 생성."""
    data = data or {}
    return dataclass_type(**{
        k: v for k, v in data.items()
        if k in dataclass_type.__dataclass_fields__
    })


@dataclass
class Config:
    """전체 설정. from_yaml() 또는 from_json()으로 파일에서 로드."""
    strategy: StrategyConfig = field(default_factory=StrategyConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    exit: dict[str, Any] = field(default_factory=dict)
    ranker: dict[str, Any] = field(default_factory=dict)
    account: AccountConfig = field(default_factory=AccountConfig)
    notification: NotificationConfig = field(default_factory=NotificationConfig)
    backtest: BacktestConfig = field(default_factory=BacktestConfig)
    log_level: str = "INFO"
    log_dir: str = "logs"

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        """YAML 파일에서 설정 로드."""
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return cls._from_dict(data or {})

    @classmethod
    def from_json(cls, path: str | Path) -> "Config":
        """JSON 파일에서 설정 로드."""
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "Config":
        """딕셔너리에서 Config 생성."""
        strategy_data = data.get("strategy") or {}

        # strategy 섹션 파싱: name, universe는 직접 필드, 나머지는 모두 params로
        if "params" in strategy_data:
            strategy_params = strategy_data["params"] or {}
        else:
            strategy_params = {
                k: v for k, v in strategy_data.items()
                if k not in ("name", "universe")
            }
        strategy = StrategyConfig(
            name=strategy_data.get("name", "ema_rsi"),
            universe=list(strategy_data.get("universe", [])),
            params=strategy_params,
        )

        notification = _section(NotificationConfig, data.get("notification"))
        if not notification.telegram_token:
            notification.telegram_token = os.environ.get("TELEGRAM_BOT_TOKEN", "")
        if not notification.telegram_chat_id:
            notification.telegram_chat_id = os.environ.get("TELEGRAM_CHAT_ID", "")

        return cls(
            strategy=strategy,
            engine=_section(EngineConfig, data.get("engine")),
            exit=dict(data.get("exit") or {}),
            ranker=dict(data.get("ranker") or {}),
            account=_section(AccountConfig, data.get("account")),
            notification=notification,
            backtest=_section(BacktestConfig, data.get("backtest")),
            log_level=data.get("log_level", "INFO"),
            log_dir=data.get("log_dir", "logs"),
        )

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리로 변환."""
        from dataclasses import asdict
        return asdict(self)

    def save_yaml(self, path: str | Path) -> None:
        """YAML 파일로 저장."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(self.to_dict(), f, allow_unicode=True, default_flow_style=False)
