"""
테스트/백테스트/데모용 Mock 게이트웨이 구현.

[ 역할 ]
    실제 거래소 없이 시세 제공과 주문 체결을 시뮬레이션.
    슬리피지를 적용해 불리한 방향으로 체결가를 계산한다.

[ 시세 공급 방식 ]
    1. set_snapshot(instruments)  → 고정 스냅샷 (단위 테스트)
    2. load_history(df)           → 시점별 스냅샷 DataFrame 로드 후
       advance()로 한 시점씩 진행 (백테스트), auto_advance=True면
       get_snapshot() 호출마다 자동 진행 (데모 실행)

[ 장애 주입 ]
    set_unavailable(True)     → get_snapshot()이 UpstreamDataUnavailable
    reject_orders(symbols)    → 해당 종목 주문 실패 (None이면 전체)

[ 호출하는 곳 ]
    - backtest/engine.py, run_engine.py, 단위 테스트
"""

import logging
import uuid
from typing import Iterable, Optional

import pandas as pd

from autotrader.core.exceptions import UpstreamDataUnavailable
from autotrader.core.market_gateway import Instrument, MarketGateway, OrderResult, OrderSide

logger = logging.getLogger("autotrader.gateway")

SNAPSHOT_COLUMNS = ["timestamp", "symbol", "current_price", "price_change_24h", "volume_24h"]


def frame_to_instruments(frame: pd.DataFrame) -> list[Instrument]:
    """한 시점 분량의 DataFrame 행들을 Instrument 리스트로 변환."""
    instruments = []
    for row in frame.itertuples(index=False):
        volume = getattr(row, "volume_24h", None)
        instruments.append(Instrument(
            symbol=str(row.symbol),
            current_price=float(row.current_price),
            price_change_24h=float(row.price_change_24h),
            volume_24h=None if volume is None or pd.isna(volume) else float(volume),
        ))
    return instruments


class MockMarketGateway(MarketGateway):
    """Mock 게이트웨이. 실제 주문 없이 메모리 시세로 체결.

    매수 시: 가격 * (1 + slippage) 로 불리하게 체결
    매도 시: 가격 * (1 - slippage) 로 불리하게 체결
    """

    def __init__(self, slippage_rate: float = 0.0, auto_advance: bool = False):
        self.slippage_rate = slippage_rate
        self.auto_advance = auto_advance

        self._snapshot: dict[str, Instrument] = {}           # symbol → 현재 시세
        self._history: list[list[Instrument]] = []           # 시점별 스냅샷
        self._timestamps: list = []
        self._cursor = -1
        self._unavailable = False
        self._rejected: Optional[set[str]] = set()           # None이면 전체 거절
        self.orders: list[OrderResult] = []                  # 제출된 주문 (성공/실패 모두)
        self.snapshot_calls = 0

    # ─── 시세 설정 ──────────────────────────────────────────────────────────

    def set_snapshot(self, instruments: Iterable[Instrument]) -> None:
        self._snapshot = {i.symbol: i for i in instruments}

    def set_price(self, symbol: str, price: float, change_24h: float = 0.0, volume_24h: float | None = None) -> None:
        """종목 1개 시세 설정 (시뮬레이션용)."""
        self._snapshot[symbol] = Instrument(symbol, price, change_24h, volume_24h)

    def load_history(self, df: pd.DataFrame) -> int:
        """시점별 스냅샷 로드. 로드된 시점 수 반환.

        Args:
            df: columns [timestamp, symbol, current_price, price_change_24h, volume_24h]
        """
        missing = [c for c in SNAPSHOT_COLUMNS[:4] if c not in df.columns]
        if missing:
            raise ValueError(f"스냅샷 DataFrame 컬럼 누락: {missing}")

        df = df.sort_values(["timestamp", "symbol"]).reset_index(drop=True)
        self._history = []
        self._timestamps = []
        for ts, frame in df.groupby("timestamp", sort=True):
            self._timestamps.append(ts)
            self._history.append(frame_to_instruments(frame))
        self._cursor = -1
        return len(self._history)

    def advance(self) -> bool:
        """다음 시점으로 이동. 더 이상 없으면 False."""
        if self._cursor + 1 >= len(self._history):
            return False
        self._cursor += 1
        self.set_snapshot(self._history[self._cursor])
        return True

    @property
    def current_timestamp(self):
        if 0 <= self._cursor < len(self._timestamps):
            return self._timestamps[self._cursor]
        return None

    def set_unavailable(self, unavailable: bool = True) -> None:
        self._unavailable = unavailable

    def reject_orders(self, symbols: Optional[Iterable[str]] = None) -> None:
        """주문 거절 설정. symbols=None 이면 모든 주문 거절."""
        self._rejected = None if symbols is None else set(symbols)

    def accept_all_orders(self) -> None:
        self._rejected = set()

    def prices(self) -> dict[str, float]:
        return {s: i.current_price for s, i in self._snapshot.items()}

    # ─── MarketGateway 구현 ────────────────────────────────────────────────

    def get_snapshot(self, universe: list[str]) -> list[Instrument]:
        self.snapshot_calls += 1
        if self._unavailable:
            raise UpstreamDataUnavailable("Mock 게이트웨이: 시세 장애 주입됨")
        if self.auto_advance and self._history and not self.advance():
            # 이력 끝에 도달하면 처음부터 다시 재생
            self._cursor = -1
            self.advance()
        if not universe:
            return list(self._snapshot.values())
        return [self._snapshot[s] for s in universe if s in self._snapshot]

    def submit_order(self, symbol: str, side: OrderSide, quantity: float) -> OrderResult:
        order_id = str(uuid.uuid4())[:8]
        instrument = self._snapshot.get(symbol)

        if self._rejected is None or symbol in self._rejected:
            result = OrderResult(symbol, side, quantity, success=False, order_id=order_id, message="Rejected by gateway")
        elif instrument is None or quantity <= 0:
            result = OrderResult(symbol, side, quantity, success=False, order_id=order_id, message="Unknown symbol or quantity")
        else:
            if side == OrderSide.BUY:
                exec_price = instrument.current_price * (1 + self.slippage_rate)
            else:
                exec_price = instrument.current_price * (1 - self.slippage_rate)
            result = OrderResult(symbol, side, quantity, success=True, filled_price=exec_price, order_id=order_id)

        self.orders.append(result)
        logger.debug(f"Mock 주문 {side.value} {symbol} {quantity:.6f}: {'체결' if result.success else result.message}")
        return result
