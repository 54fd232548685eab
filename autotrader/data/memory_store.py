"""
메모리 기반 저장소 구현.

[ 포함 클래스 ]
    InMemoryLedgerStore   - core/ledger_store.py::LedgerStore 구현체
    InMemorySettingsStore - core/settings_store.py::SettingsStore 구현체

[ 호출하는 곳 ]
    - backtest/engine.py에서 백테스트마다 새로 생성
    - run_engine.py 데모 실행
    - 단위 테스트

[ 실전 교체 ]
    DB 연동 시 같은 인터페이스로 구현체만 바꾸면 된다.
    조회 메서드는 사본을 반환하므로 호출자의 수정이 저장소에 새지 않는다.
"""

import copy
import threading
from dataclasses import replace
from typing import Optional

from autotrader.core.ledger_store import Account, LedgerStore, Position, Trade
from autotrader.core.settings_store import SettingsStore, StrategySettings


class InMemoryLedgerStore(LedgerStore):
    """dict 기반 원장 저장소.

    사용법:
        store = InMemoryLedgerStore()
        store.create_account("acc-1", main_balance=100.0)
    """

    def __init__(self):
        self._accounts: dict[str, Account] = {}                      # account_id → Account
        self._positions: dict[tuple[str, str], Position] = {}        # (account_id, symbol) → Position
        self._trades: dict[str, list[Trade]] = {}                    # account_id → 거래 기록
        self._lock = threading.Lock()

    def create_account(self, account_id: str, main_balance: float = 0.0, profit_balance: float = 0.0) -> Account:
        """온보딩: 계좌 생성."""
        account = Account(account_id=account_id, main_balance=main_balance, profit_balance=profit_balance)
        self.save_account(account)
        return replace(account)

    def get_account(self, account_id: str) -> Optional[Account]:
        with self._lock:
            account = self._accounts.get(account_id)
            return replace(account) if account else None

    def save_account(self, account: Account) -> None:
        with self._lock:
            self._accounts[account.account_id] = replace(account)

    def get_position(self, account_id: str, symbol: str) -> Optional[Position]:
        with self._lock:
            position = self._positions.get((account_id, symbol))
            return replace(position) if position else None

    def list_positions(self, account_id: str) -> list[Position]:
        with self._lock:
            return [replace(p) for (acc, _), p in self._positions.items() if acc == account_id]

    def upsert_position(self, position: Position) -> None:
        with self._lock:
            self._positions[(position.account_id, position.symbol)] = replace(position)

    def delete_position(self, account_id: str, symbol: str) -> None:
        with self._lock:
            self._positions.pop((account_id, symbol), None)

    def append_trade(self, trade: Trade) -> None:
        with self._lock:
            self._trades.setdefault(trade.account_id, []).append(trade)

    def list_trades(self, account_id: str) -> list[Trade]:
        with self._lock:
            return list(self._trades.get(account_id, []))


class InMemorySettingsStore(SettingsStore):
    """dict 기반 설정 저장소."""

    def __init__(self):
        self._settings: dict[str, StrategySettings] = {}
        self._lock = threading.Lock()

    def create_settings(self, settings: StrategySettings) -> None:
        """온보딩: 계좌 설정 생성 (이미 있으면 덮어씀)."""
        with self._lock:
            self._settings[settings.account_id] = copy.deepcopy(settings)

    def update_settings(self, account_id: str, **changes) -> StrategySettings:
        """외부(대시보드 등)에서 설정 변경."""
        with self._lock:
            current = self._settings[account_id]
            self._settings[account_id] = replace(current, **changes)
            return copy.deepcopy(self._settings[account_id])

    def get_settings(self, account_id: str) -> StrategySettings:
        with self._lock:
            if account_id not in self._settings:
                raise KeyError(f"설정 없음: {account_id}")
            return copy.deepcopy(self._settings[account_id])

    def set_active(self, account_id: str, active: bool) -> None:
        self.update_settings(account_id, is_active=active)
