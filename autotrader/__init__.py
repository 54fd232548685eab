"""
=============================================================================
암호화폐 자동매매 엔진 (autotrader)
=============================================================================

[ 시스템 전체 구조 ]

    run_engine.py (라이브 진입점)          run_backtest.py (백테스트 진입점)
         │                                       │
         ├── utils/config.py        ← config.yaml 설정 로드
         ├── utils/logger.py        ← 로깅
         │                                       │
         └── engine/scheduler.py                 └── backtest/engine.py
               │  (계좌별 타이머, single-flight)          │  (시점별 재생)
               │                                         │
               └──────────── engine/trading_cycle.py ────┘
                                  │
                                  ├── strategies/            ← 시그널 분석 (스코어링 프로필)
                                  ├── engine/exit_evaluator.py     ← 보유 포지션 청산 판단
                                  ├── engine/opportunity_ranker.py ← 신규 매수 후보 선정
                                  ├── engine/order_executor.py     ← 외부 주문 → 원장 반영
                                  │     └── data/ledger.py         ← 잔고/포지션/거래 기록
                                  └── engine/events.py             ← 이벤트 발행


[ 핵심 추상 클래스 (core/) - 모든 구현체의 부모 ]

    core/market_gateway.py   → brokers/mock_gateway.py (테스트/백테스트용 구현)
    core/ledger_store.py     → data/memory_store.py::InMemoryLedgerStore
    core/settings_store.py   → data/memory_store.py::InMemorySettingsStore
    core/notifier.py         → notifiers/telegram.py (TelegramNotifier, LogNotifier)
    core/signal_analyzer.py  → strategies/heuristic.py (+ ema_rsi, momentum, scalping 프로필)


[ 사이클 1회 데이터 흐름 ]

    1. SettingsStore에서 계좌 설정 조회 (비활성이면 중지)
    2. MarketGateway에서 시세 스냅샷 조회 (실패하면 자동 비활성화)
    3. 총 자산 >= 목표 수익이면 전량 청산 후 중지
    4. 보유 포지션마다 ExitEvaluator → OrderExecutor (매도)
    5. 잔고가 남으면 OpportunityRanker → OrderExecutor (매수)
    6. portfolio 이벤트 발행


[ 불변 조건 ]

    - main_balance는 절대 음수가 되지 않는다 (매수 거절, 보정하지 않음)
    - 원장은 외부 주문 체결이 확인된 뒤에만 변경된다
    - 한 계좌의 사이클은 동시에 하나만 실행된다
"""
