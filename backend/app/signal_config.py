"""Signal generator tunables loaded from signals.yaml.

Supports:
- OTC auto-signal pairs, indicator weights, RSI thresholds and timing
- M1 scanner pairs, minimum strength and schedule
- No YAML file = built-in defaults
"""

import logging
import math
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, model_validator

from core.models.config import M1Config, OTCConfig

logger = logging.getLogger(__name__)


def _check_second(name: str, value: int) -> None:
    if not 0 <= value <= 59:
        raise ValueError(f"{name} must be within 0..59, got {value}")


class SignalConfig(BaseModel):
    """Top-level signals.yaml configuration."""

    otc: OTCConfig = OTCConfig()
    m1: M1Config = M1Config()

    @model_validator(mode="after")
    def _validate(self):
        total = self.otc.weights.total
        if not math.isclose(total, 1.0, abs_tol=1e-6):
            raise ValueError(f"otc.weights must sum to 1.0, got {total:.4f}")
        if not self.otc.pairs:
            raise ValueError("otc.pairs must not be empty")
        if not self.m1.pairs:
            raise ValueError("m1.pairs must not be empty")
        if self.otc.rsi.oversold >= self.otc.rsi.overbought:
            raise ValueError("otc.rsi.oversold must be below otc.rsi.overbought")

        _check_second("otc.timing.send_at_second", self.otc.timing.send_at_second)
        _check_second("otc.timing.entry_at_second", self.otc.timing.entry_at_second)
        _check_second("m1.scan_at_second", self.m1.scan_at_second)
        _check_second("m1.check_at_second", self.m1.check_at_second)
        _check_second("m1.entry_at_second", self.m1.entry_at_second)
        return self


_DEFAULT_PATH = Path(__file__).parent.parent / "signals.yaml"


def load_signal_config(path: Path | None = None) -> SignalConfig:
    """Load signal config from YAML file.

    Falls back to defaults if the file doesn't exist.
    """
    config_path = path or _DEFAULT_PATH

    # Load .env next to the YAML so Settings and the YAML share one environment
    env_path = config_path.parent / ".env"
    load_dotenv(env_path, override=False)

    if not config_path.exists():
        logger.info("No signals.yaml found at %s, using defaults", config_path)
        return SignalConfig()

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    config = SignalConfig(**raw)
    logger.info(
        "Loaded signal config: %d OTC pairs (min strength %.0f), %d M1 pairs (min strength %.0f)",
        len(config.otc.pairs),
        config.otc.strength.minimum,
        len(config.m1.pairs),
        config.m1.min_strength,
    )
    return config
