import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from dotenv import load_dotenv

load_dotenv()


def _env_int(key: str, default: str) -> int:
    raw = os.getenv(key, default)
    cleaned = (raw or "").strip().replace(",", "").replace("_", "")
    return int(cleaned)


def _env_float(key: str, default: str) -> float:
    raw = os.getenv(key, default)
    cleaned = (raw or "").strip().replace(",", "").replace("_", "")
    return float(cleaned)


def _env_optional(key: str) -> Optional[str]:
    value = (os.getenv(key) or "").strip()
    return value or None


@dataclass(frozen=True)
class RatePreset:
    """Example annual rate shown to users, with the kind of strategy behind it."""

    rate_pct: int
    label: str
    description: str


@dataclass
class Settings:
    """Centralised configuration for the Aura Grow bot."""

    telegram_token: str
    aura_api_base: str = field(
        default_factory=lambda: os.getenv("AURA_API_BASE", "https://aura.adex.network/api/portfolio").rstrip("/")
    )
    aura_api_key: Optional[str] = field(default_factory=lambda: _env_optional("AURA_API_KEY"))
    http_timeout: float = field(default_factory=lambda: _env_float("HTTP_TIMEOUT", "12"))
    # Empty CACHE_PATH keeps the cache in memory only.
    cache_path: str = field(default_factory=lambda: os.getenv("CACHE_PATH", ".aura_cache.json").strip())
    manual_principal_usd: float = field(default_factory=lambda: _env_float("MANUAL_PRINCIPAL_USD", "1000"))
    default_rate_pct: float = field(default_factory=lambda: _env_float("DEFAULT_RATE_PCT", "11"))
    default_years: int = field(default_factory=lambda: _env_int("DEFAULT_YEARS", "30"))
    min_years: int = 1
    max_years: int = field(default_factory=lambda: _env_int("MAX_YEARS", "35"))
    rate_presets: Dict[int, RatePreset] = field(
        default_factory=lambda: {
            4: RatePreset(4, "stable yields", "Lido staking, USDC lending. Lower risk, steady returns."),
            11: RatePreset(11, "DeFi pools", "Aave, Balancer, Uniswap. Moderate risk, proven protocols."),
            21: RatePreset(21, "aggressive farming", "Yield vaults, LSDfi. Higher risk, bull market opportunities."),
        }
    )

    @property
    def balances_endpoint(self) -> str:
        return f"{self.aura_api_base}/balances"

    @property
    def strategies_endpoint(self) -> str:
        return f"{self.aura_api_base}/strategies"

    def clamp_years(self, years: int) -> int:
        return max(self.min_years, min(self.max_years, years))

    @staticmethod
    def _require(key: str, value: Optional[str]) -> str:
        if not value:
            raise RuntimeError(f"Missing required environment variable '{key}'.")
        return value

    @classmethod
    def from_env(cls) -> "Settings":
        token = cls._require("TELEGRAM_BOT_TOKEN", os.getenv("TELEGRAM_BOT_TOKEN"))
        return cls(telegram_token=token)
