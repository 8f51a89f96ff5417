"""Telegram bot command handling for the webhook route."""

import logging
import time
from datetime import datetime, timezone

import numpy as np

from core.ethereal import (
    ETHEREAL_CURRENCY_PAIRS,
    format_ethereal_message,
    generate_ethereal_signal,
)
from core.market_data import generate_mock_market_data
from core.ml_model import generate_enhanced_signal
from core.models.signal import Direction, TradingSignal

logger = logging.getLogger(__name__)

VERSION = "2.0.0 ETHEREAL"

HELP_TEXT = """🤖 *Trading Signal Bot Commands*

/signal - Generate a new trading signal
/ethereal - Generate an ETHEREAL TRANSCENDENT signal
/ethereal\\_<pair> - ETHEREAL signal for one pair (e.g. /ethereal\\_eurusd)
/status - Check system status
/symbols - List available symbols
/help - Show this message"""

UNKNOWN_COMMAND = "❓ Unknown command. Type /help to see available commands."

CRYPTO_SYMBOLS = ["BTC/USD", "ETH/USD", "XRP/USD", "LTC/USD"]

_DIRECTION_LABEL = {
    Direction.BUY: "🟢 BUY",
    Direction.SELL: "🔴 SELL",
    Direction.NEUTRAL: "⚪ NEUTRAL",
}


def command_of(text: str) -> str | None:
    """First word of a slash command, or None for plain text."""
    return text.split(" ")[0] if text.startswith("/") else None


def format_trading_signal(signal: TradingSignal) -> str:
    risk = signal.risk_management
    mtf = signal.multi_timeframe_confirmation
    entry = f"{signal.price:.5f}" if signal.price is not None else "Market Price"
    lines = [
        "🔔 *NEW SIGNAL GENERATED* 🔔",
        f"{_DIRECTION_LABEL[signal.signal]} *{signal.symbol}*",
        f"⏰ Time: {signal.timestamp:%H:%M:%S} UTC",
        f"📊 Confidence: {signal.confidence}%",
        f"🏛️ Market: {signal.market}",
        f"⏱️ Timeframe: {signal.timeframe}",
        "",
        f"💰 Entry: {entry}",
        f"🛑 Stop Loss: {risk.stop_loss:.5f}",
        f"🎯 Take Profit: {risk.take_profit:.5f}",
        f"⚖️ Risk/Reward: {risk.risk_reward_ratio:.2f}",
        "",
        "📝 Reasons:",
        *(f"- {reason}" for reason in signal.reasons),
        "",
        "🔄 Multi-Timeframe Confirmation:",
        f"M5: {mtf.m5_trend.value}",
        f"M15: {mtf.m15_trend.value}",
        f"M30: {mtf.m30_trend.value}",
    ]
    return "\n".join(lines)


def _uptime(seconds: float) -> str:
    hours, rest = divmod(int(seconds), 3600)
    return f"{hours} hours, {rest // 60} minutes"


class TelegramCommandHandler:
    """Turn an incoming chat message into the bot's reply text."""

    def __init__(
        self,
        rng: np.random.Generator | None = None,
        account_balance: float = 1000.0,
    ):
        self._rng = rng or np.random.default_rng()
        self.account_balance = account_balance
        self._started = time.monotonic()

    async def process(self, text: str, chat_id: str) -> str:
        command = text.lower().strip()
        logger.debug("Processing command %r from chat %s", command, chat_id)

        if command in ("/start", "/help"):
            return HELP_TEXT
        if command == "/signal":
            return self._signal()
        if command == "/ethereal":
            pair = ETHEREAL_CURRENCY_PAIRS[int(self._rng.integers(len(ETHEREAL_CURRENCY_PAIRS)))]
            return self._ethereal(pair)
        if command.startswith("/ethereal_"):
            return self._ethereal_for(command.removeprefix("/ethereal_"))
        if command == "/status":
            return self._status()
        if command == "/symbols":
            return self._symbols()
        return UNKNOWN_COMMAND

    def _signal(self) -> str:
        data = generate_mock_market_data("EUR/USD", "OTC", "M1", rng=self._rng)
        signal = generate_enhanced_signal(data, self.account_balance, rng=self._rng)
        return format_trading_signal(signal)

    def _ethereal(self, pair: str) -> str:
        signal = generate_ethereal_signal(pair, "M1", rng=self._rng)
        return format_ethereal_message(signal)

    def _ethereal_for(self, requested: str) -> str:
        wanted = requested.replace("/", "").lower()
        for pair in ETHEREAL_CURRENCY_PAIRS:
            if pair.removesuffix(" OTC").replace("/", "").lower() == wanted:
                return self._ethereal(pair)
        return (
            f"❌ Invalid pair: {requested.upper()}. "
            "Please use one of the available pairs from /symbols command."
        )

    def _status(self) -> str:
        lines = [
            "📊 *System Status*",
            "",
            "✅ System: Online",
            "✅ Data Feed: Synthetic",
            "✅ Signal Generator: Active",
            "✅ AI Model: Operational",
            "✅ Telegram Bot: Connected",
            "",
            f"Last Update: {datetime.now(timezone.utc):%H:%M:%S} UTC",
            f"Current Version: {VERSION}",
            f"Uptime: {_uptime(time.monotonic() - self._started)}",
        ]
        return "\n".join(lines)

    def _symbols(self) -> str:
        lines = [
            "💱 *Available Symbols*",
            "",
            "*OTC & Forex:*",
            *(f"- {pair}" for pair in ETHEREAL_CURRENCY_PAIRS),
            "",
            "*Crypto:*",
            *(f"- {symbol}" for symbol in CRYPTO_SYMBOLS),
        ]
        return "\n".join(lines)
