"""ETHEREAL/TRANSCENDENT signal generation and Telegram formatting."""

import re
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import numpy as np

from core.models.ethereal import EtherealSignal

ETHEREAL_CURRENCY_PAIRS = [
    "EUR/USD OTC",
    "GBP/USD OTC",
    "AUD/JPY OTC",
    "NZD/JPY OTC",
    "USD/MXN OTC",
    "USD/SGD OTC",
    "EUR/NZD OTC",
    "GBP/NZD OTC",
    "AUD/CAD OTC",
    "CAD/JPY OTC",
]

ETHEREAL_TIMEFRAMES = [
    "1m", "5m", "15m", "30m", "1h", "4h",
    "M1", "M5", "M15", "M30", "H1", "H4",
    "m1", "m5", "m15", "m30", "h1", "h4",
]

STRENGTH_LEVELS = ["NORMAL", "STRONG", "VERY STRONG", "ETHEREAL", "TRANSCENDENT"]

_STRENGTH_PERCENT = {
    "NORMAL": "80%",
    "STRONG": "90%",
    "VERY STRONG": "95%",
    "ETHEREAL": "99%",
    "TRANSCENDENT": "100%",
}

_STRENGTH_INDEX = {
    "NORMAL": 0,
    "STRONG": 1,
    "VERY STRONG": 2,
    "ETHEREAL": 3,
    "TRANSCENDENT": 3,
}

_QUANTUM_VOLATILITY = [
    "Hyper-fluctuating, aligned with cosmic tides",
    "Stable quantum field, harmonic oscillation",
    "Transdimensional flux, converging patterns",
    "Quantum coherence, synchronized waves",
]

_META_FEEDBACK = [
    "Self-optimized, transcendentally aligned",
    "Quantum consciousness achieved, signal optimized",
    "Interdimensional pattern recognition complete",
    "Cosmic alignment verified, signal optimized",
]

_HEDGING = [
    "Activated across correlated quantum assets",
    "Multi-dimensional hedging engaged",
    "Cross-asset quantum protection active",
    "Interdimensional risk mitigation active",
]

_NARRATIVES = [
    "Sinyal {signal} ini adalah manifestasi energi kosmik yang telah terjalin melalui "
    "resonansi quantum, sentimen kolektif, dan pola temporal transdimensional. Eksekusi "
    "dengan ketenangan jiwa, karena ini adalah harmoni pasar dan alam semesta.",
    "Kesadaran kolektif pasar telah mencapai titik kritis, menciptakan aliran energi "
    "{direction} yang tak terelakkan. Sinyal ini merupakan manifestasi dari keselarasan "
    "sempurna antara indikator teknikal dan kesadaran quantum universal.",
    "Gelombang energi {energy} telah terdeteksi melalui jaringan entanglement quantum. "
    "Sinyal ini merepresentasikan momen sinkronisitas transdimensional di mana masa lalu, "
    "sekarang, dan masa depan pasar berada dalam keselarasan sempurna.",
    "Hyperquantum Neural Mesh telah mengidentifikasi pola {direction} yang melampaui "
    "dimensi ruang-waktu konvensional. Ini adalah momen di mana realitas pasar bergeser "
    "ke arah {direction} dengan kepastian kosmik.",
]

WIB = ZoneInfo("Asia/Jakarta")

_PREFIXED_TF = re.compile(r"^([mh])(\d+)$")
_SUFFIXED_TF = re.compile(r"^\d+[mh]$")


def normalize_timeframe(timeframe: str) -> str:
    """Map ``M5``/``m5`` to ``5m`` and ``H4``/``h4`` to ``4h``; other input is returned as is."""
    tf = timeframe.lower()
    match = _PREFIXED_TF.match(tf)
    if match:
        return f"{match.group(2)}{match.group(1)}"
    if _SUFFIXED_TF.match(tf):
        return tf
    return timeframe


def normalize_pair(pair: str) -> str:
    """Append the `` OTC`` suffix when missing."""
    return pair if "OTC" in pair else f"{pair} OTC"


def is_supported_pair(pair: str) -> bool:
    candidates = {pair.lower(), normalize_pair(pair).lower()}
    return any(p.lower() in candidates for p in ETHEREAL_CURRENCY_PAIRS)


def is_supported_timeframe(timeframe: str) -> bool:
    candidates = {timeframe.lower(), normalize_timeframe(timeframe).lower()}
    return any(t.lower() in candidates for t in ETHEREAL_TIMEFRAMES)


def _choice(rng: np.random.Generator, options: list[str]) -> str:
    return options[int(rng.integers(len(options)))]


def generate_ethereal_signal(
    pair: str,
    timeframe: str,
    rng: np.random.Generator | None = None,
    now: datetime | None = None,
) -> EtherealSignal:
    """Generate an ETHEREAL signal for ``pair`` on ``timeframe``."""
    rng = rng or np.random.default_rng()
    buy = rng.random() > 0.5
    direction = "BUY" if buy else "SELL"

    return EtherealSignal(
        pair=pair,
        timeframe=normalize_timeframe(timeframe),
        direction=direction,
        timestamp=now or datetime.now(timezone.utc),
        confidence=0.9 + rng.random() * 0.1,
        quantum_volatility=_choice(rng, _QUANTUM_VOLATILITY),
        trader_energy_field=85 + rng.random() * 10,
        market_sentiment=0.8 + rng.random() * 0.2 if buy else -0.8 - rng.random() * 0.2,
        astro_alignment="Optimal for upward flow" if buy else "Optimal for downward flow",
        dimensional_flux=(
            "Stable interdimensional bullish cycle" if buy
            else "Stable interdimensional bearish cycle"
        ),
        rsi=20 + rng.random() * 10 if buy else 80 + rng.random() * 10,
        macd=0.001 + rng.random() * 0.01 if buy else -0.001 - rng.random() * 0.01,
        ema_status=(
            "EMA3 > EMA8 > EMA21 (Universal upward gradient)" if buy
            else "EMA3 < EMA8 < EMA21 (Universal downward gradient)"
        ),
        bollinger_status=(
            "Lower boundary transcended (reversal imminent)" if buy
            else "Upper boundary transcended (reversal imminent)"
        ),
        adx=45 + rng.random() * 30,
        probability_score=0.99 + rng.random() * 0.01,
        sentiment_waveform=(
            "Deep bullish entanglement detected" if buy
            else "Deep bearish entanglement detected"
        ),
        causal_loop_score="Absolute forward-backward harmony",
        meta_conscious_feedback=_choice(rng, _META_FEEDBACK),
        quantum_var=0.001 + rng.random() * 0.005,
        adaptive_positioning="Fluid between 0.5% - 3% capital, based on cosmic energy cycles",
        hedging_status=_choice(rng, _HEDGING),
        strength_level=_choice(rng, STRENGTH_LEVELS),
        market_condition=(
            "Aligned with universal cosmic cycles, primal bullish flow" if buy
            else "Aligned with universal cosmic cycles, primal bearish flow"
        ),
    )


def strength_percentage(level: str) -> str:
    return _STRENGTH_PERCENT.get(level, "85%")


def cosmic_narrative(signal: EtherealSignal) -> str:
    buy = signal.direction == "BUY"
    template = _NARRATIVES[min(_STRENGTH_INDEX.get(signal.strength_level, 0), len(_NARRATIVES) - 1)]
    return template.format(
        signal=signal.direction,
        direction="upward" if buy else "downward",
        energy="ascending" if buy else "descending",
    )


def _escape(text: str) -> str:
    return text.replace("<", "(").replace(">", ")").replace("&", "and")


def format_entry_time(timestamp: datetime) -> str:
    """Entry time in WIB as ``dd/mm/yyyy HH.MM.SS.mmm``."""
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    local = timestamp.astimezone(WIB)
    return f"{local.strftime('%d/%m/%Y %H.%M.%S')}.{local.microsecond // 1000:03d}"


def format_ethereal_message(signal: EtherealSignal) -> str:
    """Render an ETHEREAL signal as plain Telegram text."""
    arrow = "▲" if signal.direction == "BUY" else "▼"
    color = "🟢" if signal.direction == "BUY" else "🔴"
    fractal = "Calculated via interdimensional fractal boundaries"
    stop_loss = signal.stop_loss if signal.stop_loss else fractal
    take_profit = signal.take_profit if signal.take_profit else fractal

    lines = [
        "✨🌌 ETHEREAL TRANSCENDENT SIGNAL 🌌✨",
        "",
        f"{color} Pair              : {signal.pair}",
        f"⏱️ Timeframe         : {signal.timeframe}",
        f"{color} Signal            : {signal.direction} {arrow}",
        f"🔮 Quantum Resonance : {signal.confidence:.15f} (Absolute Cosmic Certainty)",
        f"⌛ Entry Time        : {format_entry_time(signal.timestamp)} WIB (Multi-dimensional synchronized)",
        "",
        "🔮 Cosmic Market Info:",
        f"• Quantum Volatility Flux         : {signal.quantum_volatility}",
        f"• Collective Trader Energy Field  : {signal.trader_energy_field:.1f}% "
        f"{signal.direction.lower()} resonance",
        f"• Entangled Market Sentiment Index: {signal.market_sentiment:.2f} (deep entanglement)",
        f"• Astro-Cosmic Alignment Index    : {signal.astro_alignment}",
        f"• Dimensional Flux Indicator      : {signal.dimensional_flux}",
        "",
        "💫 Metaphysical Technical Overview:",
        f"• RSI Hyper-Saturation            : {signal.rsi:.3f} (peak energy reversal zone)",
        f"• MACD Quantum Momentum Collapse  : {signal.macd:.5f}",
        f"• EMA Quantum Fusion              : {signal.ema_status}",
        f"• Bollinger Hyperbands Breach     : {signal.bollinger_status}",
        f"• ADX Hyperwave                   : {signal.adx:.2f} (irreversible trend momentum)",
        "",
        "🌐 Transcendent AI Insights:",
        f"• HQNM Probability {signal.direction} ({signal.timeframe})  : {signal.probability_score:.17f}",
        f"• ESN Sentiment Waveform          : {signal.sentiment_waveform}",
        f"• Temporal Causal Loop Score      : {signal.causal_loop_score}",
        f"• Meta-conscious AI feedback      : {signal.meta_conscious_feedback}",
        "",
        "⚖️ Cosmic Risk Management:",
        f"• Quantum VaR 99.9999999% ({signal.timeframe}): {signal.quantum_var:.6f}%",
        f"• Adaptive Positioning            : {signal.adaptive_positioning}",
        f"• SL                           : {stop_loss}",
        f"• TP                           : {take_profit}",
        f"• Multi-dimensional Hedging       : {signal.hedging_status}",
        "",
        "📇 Signal Strength & Narrative:",
        f"• Strength Level                 : {signal.strength_level} "
        f"({strength_percentage(signal.strength_level)})",
        f"• Market Condition               : {signal.market_condition}",
        f'• Narrative                      : "{_escape(cosmic_narrative(signal))}"',
        "",
        "---",
        "🧘‍♂️ Remember: This is not just a trade, but a spiritual journey through the cosmic "
        "market energies. Trade with awareness and harmony. 🧘‍♀️",
    ]
    return "\n".join(lines)
