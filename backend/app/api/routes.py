"""REST API routes for signals, analysis and backtests."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import numpy as np
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from app.api.deps import get_m1_service, get_notifier, get_otc_service, get_rng
from app.config import Settings, get_settings
from app.services import M1SignalService, OTCSignalService, TelegramNotifier
from backtest import BacktestEngine, ReportFormatter
from core.ai_analysis import simulate_ai_analysis
from core.ethereal import (
    ETHEREAL_CURRENCY_PAIRS,
    ETHEREAL_TIMEFRAMES,
    format_ethereal_message,
    generate_ethereal_signal,
    is_supported_timeframe,
    normalize_pair,
)
from core.indicators import IndicatorCalculator
from core.market_data import generate_backtest_candles, generate_mock_market_data
from core.ml_model import generate_enhanced_signal
from core.models.base import CamelModel
from core.models.signal import IndicatorSnapshot
from core.signal_generator import build_snapshot

logger = logging.getLogger(__name__)

router = APIRouter()


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


# Request models. Required fields are optional here so that missing values
# produce the route's own error message.
class SignalRequest(CamelModel):
    symbol: Optional[str] = None
    timeframe: str = "M1"
    market: str = "OTC"


class EtherealRequest(CamelModel):
    pair: Optional[str] = None
    timeframe: Optional[str] = None
    send_to_telegram: bool = False


class OTCRequest(CamelModel):
    pair: Optional[str] = None
    send_to_telegram: bool = True


class AIMarketData(CamelModel):
    prices: list[float] = []
    highs: Optional[list[float]] = None
    lows: Optional[list[float]] = None
    volumes: Optional[list[float]] = None
    indicators: Optional[IndicatorSnapshot] = None
    recent_signals: list[dict[str, Any]] = []


class AIAnalysisRequest(CamelModel):
    market_data: Optional[AIMarketData] = None
    timeframe: Optional[str] = None
    symbol: Optional[str] = None


class BacktestRequest(CamelModel):
    symbol: Optional[str] = None
    timeframe: str = "M1"
    market: str = "OTC"
    period: Optional[int] = 30
    initial_balance: Optional[float] = 1000.0


# ── Technical signals ──

@router.get("/signals")
async def get_signals(
    settings: Settings = Depends(get_settings),
    rng: np.random.Generator = Depends(get_rng),
):
    """Enhanced signals for the default symbols."""
    try:
        signals = [
            generate_enhanced_signal(
                generate_mock_market_data(symbol, "OTC", "M1", rng=rng),
                settings.account_balance,
                rng=rng,
            )
            for symbol in settings.default_symbols
        ]
    except Exception as e:
        logger.exception(f"Error generating signals: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate signals")

    return {
        "success": True,
        "timestamp": _timestamp(),
        "signals": [_dump(s) for s in signals],
    }


@router.post("/signals")
async def create_signal(
    request: SignalRequest,
    settings: Settings = Depends(get_settings),
    rng: np.random.Generator = Depends(get_rng),
):
    """Enhanced signal for one symbol."""
    if not request.symbol:
        raise HTTPException(status_code=400, detail="Symbol is required")

    try:
        data = generate_mock_market_data(request.symbol, request.market, request.timeframe, rng=rng)
        signal = generate_enhanced_signal(data, settings.account_balance, rng=rng)
    except Exception as e:
        logger.exception(f"Error generating signal for {request.symbol}: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate signal")

    return {"success": True, "timestamp": _timestamp(), "signal": _dump(signal)}


# ── ETHEREAL signals ──

def match_ethereal_pair(pair: str) -> str | None:
    """Canonical ETHEREAL pair for ``pair`` (case-insensitive, OTC suffix optional)."""
    candidates = {pair.strip().lower(), normalize_pair(pair.strip()).lower()}
    for known in ETHEREAL_CURRENCY_PAIRS:
        if known.lower() in candidates:
            return known
    return None


@router.get("/ethereal-signals")
async def get_ethereal_options():
    """Supported pairs and timeframes."""
    return {"pairs": ETHEREAL_CURRENCY_PAIRS, "timeframes": ETHEREAL_TIMEFRAMES}


@router.post("/ethereal-signals")
async def create_ethereal_signal(
    request: EtherealRequest,
    rng: np.random.Generator = Depends(get_rng),
    notifier: TelegramNotifier = Depends(get_notifier),
):
    """Generate an ETHEREAL signal and optionally relay it to Telegram."""
    if not request.pair or not request.timeframe:
        raise HTTPException(status_code=400, detail="Pair and timeframe are required")

    pair = match_ethereal_pair(request.pair)
    if pair is None:
        raise HTTPException(status_code=400, detail="Invalid currency pair")
    if not is_supported_timeframe(request.timeframe):
        raise HTTPException(status_code=400, detail=f"Invalid timeframe: {request.timeframe}")

    try:
        signal = generate_ethereal_signal(pair, request.timeframe, rng=rng)
    except Exception as e:
        logger.exception(f"Error generating ETHEREAL signal for {pair}: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate ETHEREAL signal")

    if request.send_to_telegram:
        if not notifier.has_token:
            raise HTTPException(status_code=500, detail="Telegram bot token not configured")
        if not await notifier.send(format_ethereal_message(signal)):
            raise HTTPException(status_code=500, detail="Failed to send signal to Telegram")

    return {"success": True, "signal": _dump(signal)}


# ── OTC auto signals ──

@router.get("/otc-signals")
async def get_otc_signals(service: OTCSignalService = Depends(get_otc_service)):
    """Active OTC signals; a fresh sweep when none are active."""
    try:
        signals = service.active_signals() or await service.generate_all()
    except Exception as e:
        logger.exception(f"Error generating OTC signals: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate OTC signals")

    return {
        "success": True,
        "timestamp": _timestamp(),
        "count": len(signals),
        "signals": [_dump(s) for s in signals],
    }


@router.post("/otc-signals")
async def create_otc_signal(
    request: OTCRequest,
    service: OTCSignalService = Depends(get_otc_service),
    notifier: TelegramNotifier = Depends(get_notifier),
):
    """Active signal for one pair, generated on demand when missing."""
    if not request.pair:
        raise HTTPException(status_code=400, detail="Pair is required")

    try:
        signal = service.active_signal_for(request.pair)
        if signal is None:
            signal = await service.generate_for_pair(request.pair)
    except Exception as e:
        logger.exception(f"Error generating OTC signal for {request.pair}: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate OTC signal")

    if signal is None:
        raise HTTPException(
            status_code=404, detail="No valid signal generated for the specified pair"
        )

    if request.send_to_telegram:
        await notifier.send(signal.message)

    return {"success": True, "timestamp": _timestamp(), "signal": _dump(signal)}


@router.get("/otc-signals/results")
async def get_otc_results(service: OTCSignalService = Depends(get_otc_service)):
    """Evaluated OTC trades, oldest first."""
    results = service.results()
    return {
        "success": True,
        "timestamp": _timestamp(),
        "count": len(results),
        "results": [_dump(r) for r in results],
    }


# ── M1 scanner ──

@router.get("/m1-otc-signals")
async def get_m1_signals(
    kind: str = Query("active", alias="type", description="active, completed or both"),
    service: M1SignalService = Depends(get_m1_service),
):
    """Active M1 signals and/or completed trades."""
    if kind == "active":
        return {"signals": [_dump(s) for s in service.active_signals()]}
    if kind == "completed":
        return {"trades": [_dump(t) for t in service.completed_trades()]}
    return {
        "active": [_dump(s) for s in service.active_signals()],
        "completed": [_dump(t) for t in service.completed_trades()],
    }


@router.post("/m1-otc-signals")
async def trigger_m1_signals():
    return {
        "success": True,
        "message": "Signal generator is running automatically based on time",
    }


# ── AI analysis ──

def _indicators_for(data: AIMarketData) -> IndicatorSnapshot:
    if data.indicators is not None:
        return data.indicators
    prices = data.prices
    values = IndicatorCalculator().calculate_latest(
        prices,
        data.highs or prices,
        data.lows or prices,
        data.volumes or [1.0] * len(prices),
    )
    return build_snapshot(values)


@router.post("/ai-analysis")
async def ai_analysis(request: AIAnalysisRequest):
    """Rule-based analysis of supplied prices and indicators."""
    if (
        request.market_data is None
        or not request.market_data.prices
        or not request.timeframe
        or not request.symbol
    ):
        raise HTTPException(
            status_code=400, detail="Market data, timeframe, and symbol are required"
        )

    try:
        indicators = _indicators_for(request.market_data)
        analysis = simulate_ai_analysis(request.symbol, request.market_data.prices, indicators)
    except Exception as e:
        logger.exception(f"Error performing AI analysis for {request.symbol}: {e}")
        raise HTTPException(status_code=500, detail="Failed to perform AI analysis")

    return {"success": True, "timestamp": _timestamp(), "analysis": _dump(analysis)}


# ── Backtest ──

def _run_backtest(request: BacktestRequest, rng: np.random.Generator) -> dict[str, Any]:
    candles = generate_backtest_candles(request.symbol, days=request.period, rng=rng)
    engine = BacktestEngine(request.symbol, request.market, request.timeframe, rng=rng)
    return ReportFormatter.to_dict(engine.run(candles, request.initial_balance))


@router.post("/backtest")
async def backtest(
    request: BacktestRequest,
    rng: np.random.Generator = Depends(get_rng),
):
    """Backtest the technical generator over ``period`` days of synthetic candles."""
    if not request.symbol:
        raise HTTPException(status_code=400, detail="Symbol is required")
    if (request.period or 0) < 0:
        raise HTTPException(status_code=400, detail="Period must not be negative")
    if (request.initial_balance or 0) < 0:
        raise HTTPException(status_code=400, detail="Initial balance must not be negative")

    # Zero or missing values fall back to the defaults
    request = request.model_copy(update={
        "period": request.period or 30,
        "initial_balance": request.initial_balance or 1000.0,
    })

    try:
        results = await asyncio.to_thread(_run_backtest, request, rng)
    except Exception as e:
        logger.exception(f"Error running backtest for {request.symbol}: {e}")
        raise HTTPException(status_code=500, detail="Failed to run backtest")

    return {"success": True, "timestamp": _timestamp(), "results": results}
