import pytest

from autotrader.core.market_gateway import Instrument
from autotrader.engine.trading_cycle import CycleOutcome, TradingCycle

ACCOUNT = "acc-1"

# ema_rsi 프로필 기준 STRONG_BUY (신뢰도 0.95, 점수 7.46)
STRONG_BUY = Instrument("ETH", 100.0, 0.5, 2_000_000)
# ema_rsi 프로필 기준 HOLD
NEUTRAL = Instrument("SOL", 100.0, 7.0)


def test_inactive_account_does_nothing(cycle, settings_store, gateway):
    settings_store.set_active(ACCOUNT, False)

    report = cycle.run(ACCOUNT)

    assert report.outcome == CycleOutcome.INACTIVE
    assert report.outcome.should_stop
    assert gateway.snapshot_calls == 0


def test_data_outage_deactivates_without_trading(cycle, settings_store, gateway, recorder):
    gateway.set_snapshot([STRONG_BUY])
    gateway.set_unavailable(True)

    report = cycle.run(ACCOUNT)

    assert report.outcome == CycleOutcome.DATA_UNAVAILABLE
    assert report.trades == []
    assert gateway.orders == []
    assert settings_store.get_settings(ACCOUNT).is_active is False
    status = recorder.of_type("bot_status")
    assert status and status[0]["is_active"] is False


def test_empty_snapshot_treated_as_outage(cycle, settings_store, gateway):
    settings_store.update_settings(ACCOUNT, trading_pairs=["DOGE"])
    gateway.set_snapshot([STRONG_BUY])

    report = cycle.run(ACCOUNT)

    assert report.outcome == CycleOutcome.DATA_UNAVAILABLE
    assert settings_store.get_settings(ACCOUNT).is_active is False


def test_target_profit_liquidates_everything(cycle, settings_store, gateway, ledger):
    ledger.apply_buy(ACCOUNT, "SOL", 0.5, 100.0, 50.0)
    settings_store.update_settings(ACCOUNT, target_profit=100.0)
    # 평가 손익 0: 개별 청산 단계로는 팔리지 않는 포지션
    gateway.set_snapshot([NEUTRAL, STRONG_BUY])

    report = cycle.run(ACCOUNT)

    assert report.outcome == CycleOutcome.TARGET_REACHED
    assert [t.symbol for t in report.sells] == ["SOL"]
    assert report.buys == []
    assert ledger.get_positions(ACCOUNT) == []
    assert settings_store.get_settings(ACCOUNT).is_active is False


def test_profitable_position_is_sold(settings_store, gateway, ledger, executor, broadcaster):
    cycle = TradingCycle(settings_store, gateway, ledger, executor, broadcaster, min_trading_balance=1e9)
    ledger.apply_buy(ACCOUNT, "BTC", 0.5, 100.0, 50.0)
    gateway.set_snapshot([Instrument("BTC", 120.0)])

    report = cycle.run(ACCOUNT)

    assert report.outcome == CycleOutcome.COMPLETED
    assert len(report.sells) == 1
    assert report.sells[0].amount == 0.5
    assert ledger.get_position(ACCOUNT, "BTC") is None
    assert ledger.get_account(ACCOUNT).profit_balance == pytest.approx(10.0)
    assert report.buy_phase_skipped


def test_buys_top_candidate_and_publishes_portfolio(cycle, gateway, ledger, recorder):
    gateway.set_snapshot([STRONG_BUY, NEUTRAL])

    report = cycle.run(ACCOUNT)

    assert report.outcome == CycleOutcome.COMPLETED
    assert [t.symbol for t in report.buys] == ["ETH"]
    assert ledger.get_account(ACCOUNT).main_balance == pytest.approx(100 - 28.3575)
    assert ledger.get_position(ACCOUNT, "ETH").amount == pytest.approx(0.283575)
    kind, payload = recorder.events[-1]
    assert kind == "portfolio"
    assert payload["num_positions"] == 1


def test_daily_loss_limit_blocks_buys(cycle, settings_store, gateway, ledger):
    settings_store.update_settings(ACCOUNT, max_daily_loss=10.0)
    ledger.apply_buy(ACCOUNT, "XRP", 2, 10.0, 20.0)
    ledger.apply_sell(ACCOUNT, "XRP", 2, 4.0)
    gateway.set_snapshot([STRONG_BUY])

    report = cycle.run(ACCOUNT)

    assert report.outcome == CycleOutcome.COMPLETED
    assert report.buys == []
    assert "손실" in report.buy_phase_skipped


def test_low_balance_skips_buy_phase(cycle, ledger_store, gateway):
    ledger_store.create_account(ACCOUNT, main_balance=3.0)
    gateway.set_snapshot([STRONG_BUY])

    report = cycle.run(ACCOUNT)

    assert report.buys == []
    assert gateway.orders == []


def test_rejected_candidate_does_not_abort_cycle(cycle, gateway, ledger, recorder):
    gateway.set_snapshot([STRONG_BUY])
    gateway.reject_orders(["ETH"])

    report = cycle.run(ACCOUNT)

    assert report.outcome == CycleOutcome.COMPLETED
    assert report.trades == []
    assert ledger.get_account(ACCOUNT).main_balance == 100.0
    assert recorder.events[-1][0] == "portfolio"


def test_unknown_strategy_falls_back_to_default(cycle, settings_store, gateway):
    settings_store.update_settings(ACCOUNT, strategy_id="retired_profile")
    gateway.set_snapshot([STRONG_BUY])

    report = cycle.run(ACCOUNT)

    assert report.outcome == CycleOutcome.COMPLETED
    assert len(report.buys) == 1
