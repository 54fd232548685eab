import pytest

from autotrader.core.ledger_store import Position
from autotrader.core.market_gateway import Instrument
from autotrader.core.signal_analyzer import SignalResult, SignalType, VolatilityLevel
from autotrader.engine.exit_evaluator import ExitEvaluator


def make_position(average_price=100.0, amount=1.0):
    return Position("acc-1", "BTC", amount, average_price, average_price * amount)


def make_signal(signal=SignalType.HOLD, score=5.0, momentum=0.0, volatility=VolatilityLevel.LOW):
    return SignalResult("BTC", signal, 0.5, score, momentum=momentum, volatility=volatility)


@pytest.fixture
def evaluator():
    return ExitEvaluator()


def test_net_profit_accounts_for_trading_cost(evaluator):
    assert evaluator.net_profit_pct(100.0, 100.2) == pytest.approx(0.0)
    assert evaluator.net_profit_pct(100.0, 120.0) == pytest.approx((120 - 100.2) / 100.2 * 100)


def test_tier1_full_take_profit(evaluator):
    decision = evaluator.evaluate(make_position(), Instrument("BTC", 120.0), make_signal())
    assert decision.should_sell
    assert decision.tier == 1
    assert decision.sell_ratio == 1.0


def test_tier1_wins_over_lower_tiers(evaluator):
    signal = make_signal(SignalType.STRONG_SELL, score=1.0, momentum=-0.9, volatility=VolatilityLevel.HIGH_RISK)
    decision = evaluator.evaluate(make_position(), Instrument("BTC", 120.0), signal)
    assert decision.tier == 1


def test_tier2_momentum_reversal(evaluator):
    decision = evaluator.evaluate(make_position(), Instrument("BTC", 110.0), make_signal(momentum=-0.5))
    assert decision.tier == 2
    assert decision.sell_ratio == 0.8


def test_tier2_requires_momentum_reversal(evaluator):
    decision = evaluator.evaluate(make_position(), Instrument("BTC", 110.0), make_signal(momentum=0.0))
    assert not decision.should_sell


def test_tier3_high_risk_volatility(evaluator):
    signal = make_signal(volatility=VolatilityLevel.HIGH_RISK)
    decision = evaluator.evaluate(make_position(), Instrument("BTC", 106.0), signal)
    assert decision.tier == 3
    assert decision.sell_ratio == 0.75


def test_tier4_weak_score(evaluator):
    decision = evaluator.evaluate(make_position(), Instrument("BTC", 104.0), make_signal(score=2.0))
    assert decision.tier == 4
    assert decision.sell_ratio == 0.9


def test_tier5_strong_sell_with_small_profit(evaluator):
    signal = make_signal(SignalType.STRONG_SELL, score=3.0)
    decision = evaluator.evaluate(make_position(), Instrument("BTC", 102.0), signal)
    assert decision.tier == 5
    assert decision.sell_ratio == 0.9


def test_tier6_trailing_stop(evaluator):
    # 24시간 전 가격 103.57 → LOW 변동성 1.5% 스톱 102.02 아래
    instrument = Instrument("BTC", 101.5, -2.0)
    decision = evaluator.evaluate(make_position(), instrument, make_signal())
    assert decision.tier == 6
    assert decision.sell_ratio == 0.9


def test_trailing_stop_ignored_without_profit(evaluator):
    instrument = Instrument("BTC", 100.5, -5.0)
    decision = evaluator.evaluate(make_position(), instrument, make_signal())
    assert not decision.should_sell


def test_losing_position_is_never_sold(evaluator):
    signal = make_signal(SignalType.STRONG_SELL, score=1.0, momentum=-1.0, volatility=VolatilityLevel.HIGH_RISK)
    decision = evaluator.evaluate(make_position(), Instrument("BTC", 90.0, -10.0), signal)
    assert not decision.should_sell
    assert decision.tier is None
    assert decision.net_profit_pct < 0


def test_params_override_thresholds():
    evaluator = ExitEvaluator({"full_take_profit": 5.0})
    decision = evaluator.evaluate(make_position(), Instrument("BTC", 106.0), make_signal())
    assert decision.tier == 1
