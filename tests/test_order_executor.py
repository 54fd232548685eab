import pytest

from autotrader.brokers.mock_gateway import MockMarketGateway
from autotrader.core.exceptions import NotificationFailure
from autotrader.core.ledger_store import TradeType
from autotrader.core.market_gateway import Instrument
from autotrader.core.notifier import Notifier
from autotrader.engine.order_executor import OrderExecutor

ACCOUNT = "acc-1"


class FailingNotifier(Notifier):
    def __init__(self, error):
        self.error = error
        self.calls = 0

    def notify(self, message):
        self.calls += 1
        raise self.error


class ExplodingGateway(MockMarketGateway):
    def submit_order(self, symbol, side, quantity):
        raise ConnectionError("exchange unreachable")


@pytest.fixture
def priced_gateway(gateway):
    gateway.set_snapshot([Instrument("BTC", 10.0), Instrument("ETH", 20.0)])
    return gateway


def test_buy_commits_ledger_and_emits_events(priced_gateway, executor, ledger, recorder, notifier):
    trade = executor.execute_buy(ACCOUNT, "BTC", 2, 10.0, reason="signal")

    assert trade is not None
    assert trade.trade_type == TradeType.BUY
    assert ledger.get_account(ACCOUNT).main_balance == 80.0
    assert [kind for kind, _ in recorder.events] == ["trade", "balance"]
    assert recorder.of_type("balance")[0]["main_balance"] == 80.0
    assert len(notifier.messages) == 1
    assert "BTC" in notifier.messages[0]


def test_rejected_order_leaves_ledger_untouched(priced_gateway, executor, ledger, recorder):
    priced_gateway.reject_orders(["BTC"])

    assert executor.execute_buy(ACCOUNT, "BTC", 2, 10.0) is None
    assert ledger.get_account(ACCOUNT).main_balance == 100.0
    assert ledger.get_trades(ACCOUNT) == []
    assert recorder.events == []
    assert priced_gateway.orders[-1].success is False


def test_unaffordable_buy_is_not_submitted(priced_gateway, executor, ledger):
    assert executor.execute_buy(ACCOUNT, "BTC", 20, 10.0) is None
    assert priced_gateway.orders == []
    assert ledger.get_account(ACCOUNT).main_balance == 100.0


def test_sell_without_position_is_not_submitted(priced_gateway, executor):
    assert executor.execute_sell(ACCOUNT, "BTC", 1, 10.0) is None
    assert priced_gateway.orders == []


def test_oversized_sell_is_not_submitted(priced_gateway, executor, ledger):
    executor.execute_buy(ACCOUNT, "BTC", 2, 10.0)
    assert executor.execute_sell(ACCOUNT, "BTC", 5, 10.0) is None
    assert len(priced_gateway.orders) == 1
    assert ledger.get_position(ACCOUNT, "BTC").amount == 2


def test_sell_uses_fill_price(priced_gateway, executor, ledger):
    executor.execute_buy(ACCOUNT, "BTC", 2, 10.0)
    priced_gateway.set_price("BTC", 15.0)

    trade = executor.execute_sell(ACCOUNT, "BTC", 1, 15.0)

    assert trade.pnl == pytest.approx(5.0)
    account = ledger.get_account(ACCOUNT)
    assert account.main_balance == pytest.approx(90.0)
    assert account.profit_balance == pytest.approx(5.0)


def test_buy_debits_amount_decided_before_order(ledger, broadcaster):
    gateway = MockMarketGateway(slippage_rate=0.01)
    gateway.set_price("BTC", 10.0)
    executor = OrderExecutor(gateway, ledger, broadcaster)

    trade = executor.execute_buy(ACCOUNT, "BTC", 2, 10.0)

    assert trade.price == pytest.approx(10.1)
    assert trade.total == pytest.approx(20.0)
    assert ledger.get_account(ACCOUNT).main_balance == pytest.approx(80.0)
    assert ledger.get_position(ACCOUNT, "BTC").total_invested == pytest.approx(20.0)


def test_filled_buy_with_exact_balance_is_recorded_despite_slippage(ledger_store, ledger, broadcaster):
    ledger_store.create_account("tight", main_balance=10.0)
    gateway = MockMarketGateway(slippage_rate=0.01)
    gateway.set_price("BTC", 10.0)
    executor = OrderExecutor(gateway, ledger, broadcaster)

    trade = executor.execute_buy("tight", "BTC", 1.0, 10.0)

    assert gateway.orders[-1].success is True
    assert gateway.orders[-1].filled_price == pytest.approx(10.1)
    assert trade is not None
    assert ledger.get_position("tight", "BTC").amount == pytest.approx(1.0)
    assert ledger.get_account("tight").main_balance == pytest.approx(0.0)


@pytest.mark.parametrize("error", [NotificationFailure("telegram down"), RuntimeError("boom")])
def test_notification_failure_does_not_undo_trade(priced_gateway, ledger, broadcaster, error):
    notifier = FailingNotifier(error)
    executor = OrderExecutor(priced_gateway, ledger, broadcaster, notifier)

    trade = executor.execute_buy(ACCOUNT, "BTC", 2, 10.0)

    assert trade is not None
    assert notifier.calls == 1
    assert ledger.get_position(ACCOUNT, "BTC").amount == 2


def test_gateway_exception_treated_as_rejection(ledger, broadcaster):
    gateway = ExplodingGateway()
    gateway.set_price("BTC", 10.0)
    executor = OrderExecutor(gateway, ledger, broadcaster)

    assert executor.execute_buy(ACCOUNT, "BTC", 1, 10.0) is None
    assert ledger.get_trades(ACCOUNT) == []


def test_liquidate_all_keeps_positions_whose_orders_fail(priced_gateway, executor, ledger):
    executor.execute_buy(ACCOUNT, "BTC", 2, 10.0)
    executor.execute_buy(ACCOUNT, "ETH", 1, 20.0)
    priced_gateway.reject_orders(["ETH"])

    trades = executor.liquidate_all(ACCOUNT, {"BTC": 10.0, "ETH": 20.0}, "target")

    assert [t.symbol for t in trades] == ["BTC"]
    assert ledger.get_position(ACCOUNT, "BTC") is None
    assert ledger.get_position(ACCOUNT, "ETH").amount == 1
