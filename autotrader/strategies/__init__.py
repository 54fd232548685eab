"""
스코어링 프로필(시그널 분석기) 모듈.

[ 프로필 등록 방식 ]
    @register("프로필이름") 데코레이터로 ANALYZER_REGISTRY에 등록.
    계좌 설정의 StrategySettings.strategy_id가 이 이름을 가리킨다.
    같은 이름을 다른 클래스가 다시 등록하면 ConfigurationError.

[ 이름 해석 ]
    create_analyzer(name)                → 없는 이름이면 ConfigurationError (백테스트, CLI)
    create_analyzer(name, fallback=True) → 없는 이름이면 경고 후 DEFAULT_STRATEGY_ID
                                           (실시간 사이클: 설정 오류로 봇을 멈추지 않음)

[ 새 프로필 추가 방법 ]
    1. 이 디렉토리에 새 .py 파일 생성
    2. HeuristicSignalAnalyzer를 상속받아 DEFAULT_PARAMS만 덮어쓰기
    3. @register("이름") 데코레이터 추가
    → 패키지 임포트 시 자동 탐색되므로 엔진 코드 수정 불필요.
"""

import logging
import pkgutil
from importlib import import_module
from typing import Any

from autotrader.core.exceptions import ConfigurationError
from autotrader.core.signal_analyzer import SignalAnalyzer

logger = logging.getLogger("autotrader.strategies")

DEFAULT_STRATEGY_ID = "ema_rsi"

ANALYZER_REGISTRY: dict[str, type[SignalAnalyzer]] = {}


def register(name: str):
    """프로필 이름으로 분석기 클래스를 등록하는 데코레이터."""
    def decorator(cls: type[SignalAnalyzer]):
        existing = ANALYZER_REGISTRY.get(name)
        if existing is not None and existing is not cls:
            raise ConfigurationError(
                f"프로필 이름 중복: '{name}' ({existing.__name__}, {cls.__name__})"
            )
        ANALYZER_REGISTRY[name] = cls
        return cls
    return decorator


def create_analyzer(
    name: str,
    params: dict[str, Any] | None = None,
    fallback: bool = False,
) -> SignalAnalyzer:
    """프로필 이름으로 분석기 생성.

    Args:
        name: 프로필 이름 (예: "ema_rsi", "momentum")
        params: 프로필 DEFAULT_PARAMS 오버라이드
        fallback: True면 알 수 없는 이름을 기본 프로필로 대체

    Raises:
        ConfigurationError: 알 수 없는 이름 (fallback=False)
    """
    cls = ANALYZER_REGISTRY.get(name)
    if cls is None:
        message = f"알 수 없는 전략: '{name}'. 사용 가능: {', '.join(list_strategies())}"
        if not fallback:
            raise ConfigurationError(message)
        logger.warning(f"{message} → 기본 프로필 '{DEFAULT_STRATEGY_ID}' 사용")
        cls = ANALYZER_REGISTRY[DEFAULT_STRATEGY_ID]
    return cls(params=params)


def list_strategies() -> list[str]:
    return sorted(ANALYZER_REGISTRY)


def _load_profiles() -> None:
    for module in pkgutil.iter_modules(__path__):
        if not module.name.startswith("_"):
            import_module(f"{__name__}.{module.name}")


_load_profiles()
