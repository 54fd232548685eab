"""
외부 알림 채널 추상 클래스 정의.

[ 구현체 ]
    - notifiers/telegram.py::TelegramNotifier
    - notifiers/telegram.py::LogNotifier (토큰 미설정 시 대체)

[ 호출하는 곳 ]
    - engine/order_executor.py에서 거래 확정 후 best-effort로 호출.
      실패(NotificationFailure 포함 모든 예외)는 로그만 남기고 무시된다.
"""

from abc import ABC, abstractmethod


class Notifier(ABC):
    """알림 채널. notify()는 실패 시 NotificationFailure를 던질 수 있다."""

    @abstractmethod
    def notify(self, message: str) -> None:
        ...
