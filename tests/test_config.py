import textwrap

from autotrader.utils.config import Config


def write(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(textwrap.dedent(text), encoding="utf-8")
    return path


def test_from_yaml_parses_sections(tmp_path, monkeypatch):
    monkeypatch.delenv("TELEGRAM_BOT_TOKEN", raising=False)
    monkeypatch.delenv("TELEGRAM_CHAT_ID", raising=False)
    path = write(tmp_path, """
        strategy:
          name: momentum
          universe: [BTC, ETH]
          params:
            oversold_level: 50
        engine:
          interval_seconds: 10
          unknown_key: ignored
        exit:
          full_take_profit: 12
        account:
          initial_balance: 250
          target_profit: 300
        log_level: DEBUG
    """)

    config = Config.from_yaml(path)

    assert config.strategy.name == "momentum"
    assert config.strategy.universe == ["BTC", "ETH"]
    assert config.strategy.params == {"oversold_level": 50}
    assert config.engine.interval_seconds == 10
    assert config.exit == {"full_take_profit": 12}
    assert config.ranker == {}
    assert config.account.initial_balance == 250
    assert config.account.risk_level == 5
    assert config.notification.telegram_token == ""
    assert config.log_level == "DEBUG"


def test_strategy_keys_become_params_without_params_section(tmp_path):
    path = write(tmp_path, """
        strategy:
          name: scalping
          band_pct: 1.0
    """)

    config = Config.from_yaml(path)

    assert config.strategy.params == {"band_pct": 1.0}


def test_telegram_credentials_fall_back_to_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "env-token")
    monkeypatch.setenv("TELEGRAM_CHAT_ID", "42")
    path = write(tmp_path, "log_level: INFO\n")

    config = Config.from_yaml(path)

    assert config.notification.telegram_token == "env-token"
    assert config.notification.telegram_chat_id == "42"


def test_save_yaml_can_be_loaded_again(tmp_path):
    config = Config()
    config.strategy.universe = ["BTC"]
    config.ranker = {"max_trade_amount": 10.0}
    path = tmp_path / "out" / "config.yaml"

    config.save_yaml(path)
    loaded = Config.from_yaml(path)

    assert loaded.strategy.universe == ["BTC"]
    assert loaded.ranker == {"max_trade_amount": 10.0}
