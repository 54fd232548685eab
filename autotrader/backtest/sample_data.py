"""
백테스트용 샘플 시세 스냅샷 생성.

[ 역할 ]
    종목별 랜덤워크 가격으로 시점별 스냅샷 DataFrame을 만든다.
    brokers/mock_gateway.py::MockMarketGateway.load_history()가 그대로 읽는 형식.

[ 출력 컬럼 ]
    timestamp, symbol, current_price, price_change_24h, volume_24h

    price_change_24h는 lookback 시점 전 가격 대비 등락률(%).
    (시점 간격이 1시간이면 lookback=24가 실제 24시간 등락률)
"""

import numpy as np
import pandas as pd

DEFAULT_SYMBOLS = ["BTC", "ETH", "SOL", "XRP", "ADA"]
DEFAULT_START_PRICES = {
    "BTC": 60000.0,
    "ETH": 3000.0,
    "SOL": 150.0,
    "XRP": 0.6,
    "ADA": 0.45,
}


def generate_sample_snapshots(
    symbols: list[str] | None = None,
    steps: int = 500,
    seed: int = 42,
    volatility: float = 0.01,
    lookback: int = 24,
    freq: str = "h",
    start: str = "2024-01-01",
) -> pd.DataFrame:
    """시점별 스냅샷 DataFrame 생성.

    Args:
        symbols: 종목 목록 (None이면 DEFAULT_SYMBOLS)
        steps: 시점 수
        seed: 난수 시드 (같은 시드면 같은 데이터)
        volatility: 시점당 수익률 표준편차
        lookback: 등락률 기준이 되는 과거 시점 수
        freq: 시점 간격 (pandas offset alias)
        start: 시작 시각
    """
    symbols = symbols or DEFAULT_SYMBOLS
    rng = np.random.default_rng(seed)
    timestamps = pd.date_range(start=start, periods=steps, freq=freq)

    frames = []
    for symbol in symbols:
        initial_price = DEFAULT_START_PRICES.get(symbol, 100.0)
        returns = rng.normal(0.0002, volatility, steps)
        prices = initial_price * np.cumprod(1 + returns)

        # lookback 이전 가격 (초반 구간은 첫 가격 기준)
        base_index = np.maximum(np.arange(steps) - lookback, 0)
        base_prices = prices[base_index]
        change_24h = (prices / base_prices - 1) * 100

        volumes = rng.lognormal(mean=np.log(1_000_000), sigma=0.6, size=steps)

        frames.append(pd.DataFrame({
            "timestamp": timestamps,
            "symbol": symbol,
            "current_price": prices,
            "price_change_24h": change_24h,
            "volume_24h": volumes,
        }))

    return pd.concat(frames, ignore_index=True).sort_values(["timestamp", "symbol"]).reset_index(drop=True)
