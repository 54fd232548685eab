"""
로깅 설정.

[ 로거 구성 ]
    모든 모듈은 "autotrader" 아래 자식 로거를 쓰므로 setup_logger()는 최상위
    "autotrader" 로거 하나에만 핸들러를 붙인다.

        autotrader.cycle      사이클 결과, 매수 단계 생략 사유, 봇 비활성화
        autotrader.executor   체결/거절, 알림 실패
        autotrader.ledger     원장 상태 전이 (DEBUG)
        autotrader.scheduler  틱 시작/중복 틱 생략/정지
        autotrader.gateway    모의 거래소 주문 로그
        autotrader.backtest   백테스트 진행

    사이클은 스케줄러 작업 스레드에서 돌기 때문에 포맷에 스레드 이름을 넣는다.

[ 로그 파일 ]
    {log_dir}/{name}.log 에 기록하고 자정마다 {name}.log.YYYYMMDD 로 넘긴다.
    엔진이 며칠씩 떠 있어도 날짜별로 나뉜다. 보관 개수는 backup_days.
    log_dir=None이면 콘솔만 사용 (백테스트, 테스트).

[ 호출하는 곳 ]
    - run_engine.py, run_backtest.py (config.log_level, config.log_dir)
"""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(threadName)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(
    name: str = "autotrader",
    level: str = "INFO",
    log_dir: str | None = "logs",
    console: bool = True,
    backup_days: int = 14,
) -> logging.Logger:
    """최상위 로거에 파일(자정 교체) / 콘솔 핸들러 등록. 다시 호출하면 레벨만 바꾼다."""
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            path / f"{name}.log",
            when="midnight",
            backupCount=backup_days,
            encoding="utf-8",
        )
        file_handler.suffix = "%Y%m%d"
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger
