"""
텔레그램 알림 채널.

[ 포함 클래스 ]
    TelegramNotifier - Bot API sendMessage로 메시지 전송 (requests)
    LogNotifier      - 토큰 미설정 시 로그로만 남기는 대체 구현

[ 실패 처리 ]
    전송이 max_retries번 모두 실패하면 NotificationFailure를 던진다.
    호출자(engine/order_executor.py)가 잡아서 로그만 남긴다.

[ 생성 ]
    build_notifier(token, chat_id): 둘 다 있으면 TelegramNotifier, 아니면 LogNotifier
"""

import logging
from typing import Optional

import requests

from autotrader.core.exceptions import NotificationFailure
from autotrader.core.ledger_store import Trade, TradeType
from autotrader.core.notifier import Notifier

logger = logging.getLogger("autotrader.notifier")


def format_trade_message(trade: Trade) -> str:
    """거래 알림 메시지."""
    side = "매수" if trade.trade_type == TradeType.BUY else "매도"
    lines = [
        f"[자동매매] {side} 체결",
        f"종목: {trade.symbol}",
        f"수량: {trade.amount:.6f}",
        f"가격: {trade.price:.6g}",
        f"금액: {trade.total:.2f}",
    ]
    if trade.pnl is not None:
        lines.append(f"손익: {trade.pnl:+.2f}")
    if trade.reason:
        lines.append(f"사유: {trade.reason}")
    return "\n".join(lines)


class TelegramNotifier(Notifier):
    """텔레그램 봇 알림."""

    API_URL = "https://api.telegram.org/bot{token}/sendMessage"

    def __init__(self, token: str, chat_id: str, max_retries: int = 2, timeout: float = 10.0):
        self.token = token
        self.chat_id = chat_id
        self.max_retries = max_retries
        self.timeout = timeout

    def notify(self, message: str) -> None:
        url = self.API_URL.format(token=self.token)
        payload = {"chat_id": self.chat_id, "text": message}

        last_error = ""
        for attempt in range(1, self.max_retries + 1):
            try:
                response = requests.post(url, json=payload, timeout=self.timeout)
                response.raise_for_status()
                logger.debug("텔레그램 알림 전송 완료")
                return
            except requests.exceptions.RequestException as e:
                last_error = str(e)
                if isinstance(e, requests.exceptions.HTTPError) and e.response is not None:
                    last_error = f"{e} Response: {e.response.text}"
                logger.warning(f"텔레그램 알림 실패 (시도 {attempt}/{self.max_retries}): {last_error}")

        raise NotificationFailure(f"텔레그램 알림 전송 실패: {last_error}")


class LogNotifier(Notifier):
    """로그로만 남기는 알림 채널."""

    def __init__(self):
        self.messages: list[str] = []

    def notify(self, message: str) -> None:
        self.messages.append(message)
        logger.info(message.replace("\n", " | "))


def build_notifier(token: Optional[str], chat_id: Optional[str]) -> Notifier:
    if token and chat_id:
        return TelegramNotifier(token, chat_id)
    logger.info("텔레그램 토큰/채팅 ID 미설정: 로그 알림 사용")
    return LogNotifier()
