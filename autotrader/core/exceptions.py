"""
엔진 예외 정의.

[ 역할 ]
    매매 엔진에서 발생하는 오류를 종류별로 구분.
    후보 단위 오류(잔고 부족, 주문 거절 등)는 발생 지점에서 잡아 로그만 남기고,
    UpstreamDataUnavailable만 사이클 전체를 중단시킨다.

[ 호출하는 곳 ]
    - data/ledger.py            → InsufficientBalance, NoSuchPosition, OversizedSell
    - engine/order_executor.py  → OrderRejected, NotificationFailure 처리
    - engine/trading_cycle.py   → UpstreamDataUnavailable 처리 (전략 자동 비활성화)
"""


class EngineError(Exception):
    """엔진 오류의 기반 클래스."""


class ConfigurationError(EngineError):
    """설정 오류 (알 수 없는 전략 이름, 잘못된 파라미터 등)."""


class InsufficientBalance(EngineError):
    """매수 금액이 가용 잔고를 초과. 원장은 변경되지 않는다."""


class NoSuchPosition(EngineError):
    """보유하지 않은 종목 매도 시도."""


class OversizedSell(NoSuchPosition):
    """보유 수량보다 많은 수량 매도 시도."""


class UpstreamDataUnavailable(EngineError):
    """시세 조회 실패. 해당 사이클은 치명적 오류로 처리된다."""


class OrderRejected(EngineError):
    """게이트웨이가 주문을 거절. 원장은 변경되지 않고 다음 후보로 진행."""


class NotificationFailure(EngineError):
    """알림 전송 실패. 로그만 남기고 호출자에게 전파하지 않는다."""
