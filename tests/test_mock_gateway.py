import pytest

from autotrader.backtest.sample_data import generate_sample_snapshots
from autotrader.brokers.mock_gateway import MockMarketGateway
from autotrader.core.exceptions import UpstreamDataUnavailable
from autotrader.core.market_gateway import Instrument, OrderSide


def test_history_replay_advances_one_step_at_a_time():
    gateway = MockMarketGateway()
    steps = gateway.load_history(generate_sample_snapshots(symbols=["BTC", "ETH"], steps=3))

    assert steps == 3
    seen = []
    while gateway.advance():
        seen.append(gateway.current_timestamp)
        assert {i.symbol for i in gateway.get_snapshot([])} == {"BTC", "ETH"}
    assert len(seen) == 3


def test_auto_advance_moves_on_each_snapshot_and_wraps():
    gateway = MockMarketGateway(auto_advance=True)
    gateway.load_history(generate_sample_snapshots(symbols=["BTC"], steps=2))

    stamps = []
    for _ in range(3):
        gateway.get_snapshot(["BTC"])
        stamps.append(gateway.current_timestamp)
    assert stamps[0] != stamps[1]
    assert stamps[2] == stamps[0]


def test_universe_filter_and_outage():
    gateway = MockMarketGateway()
    gateway.set_snapshot([Instrument("BTC", 10.0), Instrument("ETH", 20.0)])

    assert [i.symbol for i in gateway.get_snapshot(["ETH", "DOGE"])] == ["ETH"]

    gateway.set_unavailable(True)
    with pytest.raises(UpstreamDataUnavailable):
        gateway.get_snapshot(["BTC"])


def test_fills_with_adverse_slippage():
    gateway = MockMarketGateway(slippage_rate=0.01)
    gateway.set_price("BTC", 100.0)

    assert gateway.submit_order("BTC", OrderSide.BUY, 1).filled_price == pytest.approx(101.0)
    assert gateway.submit_order("BTC", OrderSide.SELL, 1).filled_price == pytest.approx(99.0)


def test_rejections():
    gateway = MockMarketGateway()
    gateway.set_price("BTC", 100.0)

    assert gateway.submit_order("DOGE", OrderSide.BUY, 1).success is False
    gateway.reject_orders()
    assert gateway.submit_order("BTC", OrderSide.BUY, 1).success is False
    gateway.accept_all_orders()
    assert gateway.submit_order("BTC", OrderSide.BUY, 1).success is True
    assert len(gateway.orders) == 3


def test_load_history_requires_columns():
    import pandas as pd

    with pytest.raises(ValueError):
        MockMarketGateway().load_history(pd.DataFrame({"symbol": ["BTC"]}))
