import random
from datetime import datetime, timedelta

import pytest

from autotrader.core.exceptions import InsufficientBalance, NoSuchPosition, OversizedSell
from autotrader.core.ledger_store import TradeType

ACCOUNT = "acc-1"


def test_buy_opens_position_and_debits_balance(ledger):
    trade = ledger.apply_buy(ACCOUNT, "BTC", 2, 10.0, 20.0, reason="test")

    position = ledger.get_position(ACCOUNT, "BTC")
    assert position.amount == 2
    assert position.average_price == 10.0
    assert position.total_invested == 20.0
    assert ledger.get_account(ACCOUNT).main_balance == 80.0
    assert trade.trade_type == TradeType.BUY
    assert trade.total == 20.0
    assert trade.pnl is None


def test_second_buy_recomputes_weighted_average(ledger):
    ledger.apply_buy(ACCOUNT, "BTC", 1, 10.0, 10.0)
    ledger.apply_buy(ACCOUNT, "BTC", 1, 20.0, 20.0)

    position = ledger.get_position(ACCOUNT, "BTC")
    assert position.amount == 2
    assert position.total_invested == 30.0
    assert position.average_price == 15.0
    assert ledger.get_account(ACCOUNT).main_balance == 70.0


def test_cost_basis_follows_invest_amount_not_fill_price(ledger):
    trade = ledger.apply_buy(ACCOUNT, "BTC", 2, 10.5, 20.0)

    position = ledger.get_position(ACCOUNT, "BTC")
    assert trade.price == 10.5
    assert trade.total == 20.0
    assert position.total_invested == 20.0
    assert position.average_price == 10.0
    assert ledger.get_account(ACCOUNT).main_balance == 80.0


def test_profitable_partial_sell_splits_cost_basis_and_profit(ledger):
    ledger.apply_buy(ACCOUNT, "BTC", 2, 10.0, 20.0)
    trade = ledger.apply_sell(ACCOUNT, "BTC", 1, 15.0)

    account = ledger.get_account(ACCOUNT)
    position = ledger.get_position(ACCOUNT, "BTC")
    assert account.main_balance == 90.0
    assert account.profit_balance == 5.0
    assert position.amount == 1
    assert position.average_price == 10.0
    assert position.total_invested == 10.0
    assert trade.total == 15.0
    assert trade.pnl == 5.0


def test_losing_sell_credits_proceeds_only(ledger):
    ledger.apply_buy(ACCOUNT, "BTC", 2, 10.0, 20.0)
    trade = ledger.apply_sell(ACCOUNT, "BTC", 2, 8.0)

    account = ledger.get_account(ACCOUNT)
    assert account.main_balance == 96.0
    assert account.profit_balance == 0.0
    assert ledger.get_position(ACCOUNT, "BTC") is None
    assert trade.pnl == -4.0


def test_partial_sell_reduces_total_invested_proportionally(ledger):
    ledger.apply_buy(ACCOUNT, "ETH", 4, 10.0, 40.0)
    ledger.apply_sell(ACCOUNT, "ETH", 1, 12.0)

    position = ledger.get_position(ACCOUNT, "ETH")
    assert position.total_invested == pytest.approx(30.0)
    assert position.average_price == 10.0


def test_buy_rejected_when_balance_insufficient(ledger):
    with pytest.raises(InsufficientBalance):
        ledger.apply_buy(ACCOUNT, "BTC", 15, 10.0, 150.0)

    assert ledger.get_account(ACCOUNT).main_balance == 100.0
    assert ledger.get_position(ACCOUNT, "BTC") is None
    assert ledger.get_trades(ACCOUNT) == []


def test_sell_without_position_rejected(ledger):
    with pytest.raises(NoSuchPosition):
        ledger.apply_sell(ACCOUNT, "BTC", 1, 10.0)
    assert ledger.get_trades(ACCOUNT) == []


def test_oversized_sell_rejected_without_mutation(ledger):
    ledger.apply_buy(ACCOUNT, "BTC", 2, 10.0, 20.0)

    with pytest.raises(OversizedSell) as exc_info:
        ledger.apply_sell(ACCOUNT, "BTC", 3, 10.0)

    assert isinstance(exc_info.value, NoSuchPosition)
    assert ledger.get_position(ACCOUNT, "BTC").amount == 2
    assert ledger.get_account(ACCOUNT).main_balance == 80.0
    assert len(ledger.get_trades(ACCOUNT)) == 1


def test_sell_within_epsilon_of_holding_closes_position(ledger):
    ledger.apply_buy(ACCOUNT, "BTC", 2, 10.0, 20.0)
    trade = ledger.apply_sell(ACCOUNT, "BTC", 2 + 1e-9, 10.0)

    assert trade.amount == 2
    assert ledger.get_position(ACCOUNT, "BTC") is None


def test_invariants_hold_over_random_operation_sequence(ledger):
    rng = random.Random(7)
    symbols = ["BTC", "ETH", "SOL"]

    for _ in range(300):
        symbol = rng.choice(symbols)
        price = rng.uniform(1.0, 50.0)
        position = ledger.get_position(ACCOUNT, symbol)
        if position is None or rng.random() < 0.5:
            quantity = rng.uniform(0.01, 3.0)
            try:
                ledger.apply_buy(ACCOUNT, symbol, quantity, price, quantity * price)
            except InsufficientBalance:
                pass
        else:
            before = position
            ratio = rng.choice([0.25, 0.5, 0.9, 1.0])
            ledger.apply_sell(ACCOUNT, symbol, before.amount * ratio, price)
            after = ledger.get_position(ACCOUNT, symbol)
            if after is not None:
                assert after.average_price == before.average_price
                assert after.total_invested == pytest.approx(before.total_invested * (1 - ratio))

        assert ledger.get_account(ACCOUNT).main_balance >= 0
        for p in ledger.get_positions(ACCOUNT):
            assert p.total_invested / p.amount == pytest.approx(p.average_price, rel=1e-9)


def test_liquidate_all_skips_symbols_without_price(ledger):
    ledger.apply_buy(ACCOUNT, "BTC", 2, 10.0, 20.0)
    ledger.apply_buy(ACCOUNT, "ETH", 1, 30.0, 30.0)

    trades = ledger.liquidate_all(ACCOUNT, {"BTC": 12.0})

    assert [t.symbol for t in trades] == ["BTC"]
    assert ledger.get_position(ACCOUNT, "BTC") is None
    assert ledger.get_position(ACCOUNT, "ETH") is not None
    assert trades[0].reason == "목표 수익 도달 - 전량 청산"


def test_total_value_and_summary(ledger):
    ledger.apply_buy(ACCOUNT, "BTC", 2, 10.0, 20.0)
    ledger.apply_sell(ACCOUNT, "BTC", 1, 15.0)

    # 80 + 10 현금, 5 수익, 1 * 12 평가
    assert ledger.total_value(ACCOUNT, {"BTC": 12.0}) == pytest.approx(107.0)

    summary = ledger.get_summary(ACCOUNT, {"BTC": 12.0})
    assert summary["num_positions"] == 1
    assert summary["positions_value"] == pytest.approx(12.0)
    assert summary["positions"][0]["pnl"] == pytest.approx(2.0)
    assert summary["positions"][0]["pnl_percentage"] == pytest.approx(20.0)


def test_positions_without_price_valued_at_average_price(ledger):
    ledger.apply_buy(ACCOUNT, "BTC", 2, 10.0, 20.0)
    assert ledger.positions_value(ACCOUNT, {}) == pytest.approx(20.0)


def test_daily_realized_loss_counts_only_todays_losses(ledger):
    ledger.apply_buy(ACCOUNT, "BTC", 2, 10.0, 20.0)
    ledger.apply_sell(ACCOUNT, "BTC", 1, 7.0)     # -3
    ledger.apply_sell(ACCOUNT, "BTC", 1, 12.0)    # +2, 손실 아님

    assert ledger.daily_realized_loss(ACCOUNT) == pytest.approx(3.0)
    yesterday = (datetime.now() - timedelta(days=1)).date()
    assert ledger.daily_realized_loss(ACCOUNT, yesterday) == 0.0


def test_store_returns_copies(ledger, ledger_store):
    account = ledger_store.get_account(ACCOUNT)
    account.main_balance = -1.0
    assert ledger.get_account(ACCOUNT).main_balance == 100.0
