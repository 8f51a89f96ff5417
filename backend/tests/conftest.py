"""Shared fixtures and builders."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import httpx
import numpy as np
import pytest
from fastapi import FastAPI
from fastapi.responses import ORJSONResponse

from app.api import register_error_handlers, router, telegram_router
from app.services import TelegramCommandHandler
from app.storage import TelegramLogStore
from core.models.kline import Candle
from core.models.otc import (
    M1BollingerBands,
    M1MarketFactors,
    M1Signal,
    M1TechnicalFactors,
    SupportResistance,
)
from core.models.signal import (
    BollingerBands,
    Direction,
    IndicatorSnapshot,
    MACDValues,
    MultiTimeframeConfirmation,
    RiskManagement,
    TradingSignal,
)

NOW = datetime(2025, 6, 2, 12, 0, 15, tzinfo=timezone.utc)


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(42)


def make_candle(
    minute: int,
    close: float = 1.0,
    high: float | None = None,
    low: float | None = None,
    open_: float | None = None,
    volume: float = 1000.0,
    start: datetime = NOW,
) -> Candle:
    """Candle ``minute`` minutes after ``start``; high/low default to +/-0.1 %."""
    return Candle(
        timestamp=start + timedelta(minutes=minute),
        open=close if open_ is None else open_,
        high=close * 1.001 if high is None else high,
        low=close * 0.999 if low is None else low,
        close=close,
        volume=volume,
    )


def make_trading_signal(
    direction: Direction = Direction.BUY,
    confidence: int = 80,
    stop_loss: float = 0.0,
    take_profit: float = 0.0,
    symbol: str = "EUR/USD",
) -> TradingSignal:
    return TradingSignal(
        symbol=symbol,
        market="OTC",
        timeframe="M1",
        signal=direction,
        confidence=confidence,
        reasons=["test"],
        indicators=IndicatorSnapshot(
            rsi=50.0,
            macd=MACDValues(),
            ema50=1.0,
            bollinger_bands=BollingerBands(upper=1.01, middle=1.0, lower=0.99),
        ),
        risk_management=RiskManagement(stop_loss=stop_loss, take_profit=take_profit),
        multi_timeframe_confirmation=MultiTimeframeConfirmation(),
    )


def make_m1_signal(
    direction: str = "BUY",
    symbol: str = "EURUSD",
    price: float = 1.0,
    entry_time: datetime = NOW.replace(second=0) + timedelta(minutes=1),
    rsi: float = 50.0,
    macd: float = 0.0,
    percent_b: float = 0.5,
    volatility: float = 1.0,
    volume_strength: float = 1.0,
    sentiment: float = 0.0,
    distance_to_support: float = 0.2,
    risk_reward: float = 1.0,
    strength: float = 80.0,
) -> M1Signal:
    return M1Signal(
        symbol=symbol,
        name="Euro / US Dollar",
        direction=direction,
        entry_time=entry_time,
        strength=strength,
        technical_factors=M1TechnicalFactors(
            rsi=rsi,
            macd=macd,
            ema=price,
            bollinger_bands=M1BollingerBands(
                upper=price * 1.01, middle=price, lower=price * 0.99, percent_b=percent_b
            ),
        ),
        market_factors=M1MarketFactors(
            volatility=volatility, volume_strength=volume_strength, sentiment=sentiment
        ),
        support_resistance=SupportResistance(
            nearest_support=price * 0.99,
            nearest_resistance=price * 1.01,
            distance_to_support=distance_to_support,
            distance_to_resistance=0.2,
        ),
        risk_reward=risk_reward,
        timestamp=NOW,
        price=price,
    )


def newest_first(
    closes: list[float],
    volumes: list[float] | None = None,
    spread: float = 0.001,
    end: datetime = NOW,
) -> list[Candle]:
    """Candles one minute apart ending at ``end``; ``closes[0]`` is the newest."""
    volumes = volumes or [1000.0] * len(closes)
    return [
        Candle(
            timestamp=end - timedelta(minutes=i),
            open=close,
            high=close * (1 + spread),
            low=close * (1 - spread),
            close=close,
            volume=volume,
        )
        for i, (close, volume) in enumerate(zip(closes, volumes))
    ]


# ---------------------------------------------------------------------------
# HTTP app
# ---------------------------------------------------------------------------

@pytest.fixture
def notifier_mock():
    mock = MagicMock()
    mock.has_token = True
    mock.configured = True
    mock.send = AsyncMock(return_value=True)
    mock.send_error_report = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def api_app(notifier_mock):
    """Routers and error handlers with mocked services on ``app.state``."""
    app = FastAPI(default_response_class=ORJSONResponse)
    register_error_handlers(app)
    app.include_router(router, prefix="/api")
    app.include_router(telegram_router, prefix="/api")

    app.state.rng = np.random.default_rng(3)
    app.state.log_store = TelegramLogStore()
    app.state.notifier = notifier_mock
    app.state.otc_service = MagicMock()
    app.state.m1_service = MagicMock()
    app.state.command_handler = TelegramCommandHandler(rng=np.random.default_rng(4))
    return app


@pytest.fixture
async def api(api_app):
    transport = httpx.ASGITransport(app=api_app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
