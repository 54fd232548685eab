import pytest

from autotrader.brokers.mock_gateway import MockMarketGateway
from autotrader.core.settings_store import StrategySettings
from autotrader.data.ledger import Ledger
from autotrader.data.memory_store import InMemoryLedgerStore, InMemorySettingsStore
from autotrader.engine.events import EventBroadcaster, EventRecorder
from autotrader.engine.order_executor import OrderExecutor
from autotrader.engine.trading_cycle import TradingCycle
from autotrader.notifiers.telegram import LogNotifier

ACCOUNT = "acc-1"


@pytest.fixture
def ledger_store():
    store = InMemoryLedgerStore()
    store.create_account(ACCOUNT, main_balance=100.0)
    return store


@pytest.fixture
def ledger(ledger_store):
    return Ledger(ledger_store)


@pytest.fixture
def settings_store():
    store = InMemorySettingsStore()
    store.create_settings(StrategySettings(
        account_id=ACCOUNT,
        is_active=True,
        strategy_id="ema_rsi",
        risk_level=5,
        target_profit=1000.0,
        max_daily_loss=50.0,
    ))
    return store


@pytest.fixture
def gateway():
    return MockMarketGateway()


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def broadcaster(recorder):
    broadcaster = EventBroadcaster()
    broadcaster.subscribe(recorder)
    return broadcaster


@pytest.fixture
def notifier():
    return LogNotifier()


@pytest.fixture
def executor(gateway, ledger, broadcaster, notifier):
    return OrderExecutor(gateway, ledger, broadcaster, notifier)


@pytest.fixture
def cycle(settings_store, gateway, ledger, executor, broadcaster):
    return TradingCycle(settings_store, gateway, ledger, executor, broadcaster)
