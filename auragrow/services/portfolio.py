import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from auragrow.clients.aura import AuraClient
from auragrow.errors import AuraError
from auragrow.utils.cache import ResponseCache

logger = logging.getLogger(__name__)

BALANCES_NAMESPACE = "balances"
STRATEGIES_NAMESPACE = "strategies"
MAX_STRATEGIES_PER_BUCKET = 3
RISK_BUCKETS = {
    "low": "low",
    "moderate": "moderate",
    "high": "high",
    "opportunistic": "high",
}


@dataclass(frozen=True)
class Strategy:
    name: str
    apy: Optional[str] = None
    platforms: Tuple[str, ...] = ()
    description: Optional[str] = None


@dataclass
class StrategyBucket:
    low: List[Strategy] = field(default_factory=list)
    moderate: List[Strategy] = field(default_factory=list)
    high: List[Strategy] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.low or self.moderate or self.high)


@dataclass(frozen=True)
class PrincipalResult:
    principal: Optional[float]
    cached: bool
    response_time_ms: int


@dataclass(frozen=True)
class RefetchResult:
    principal: Optional[float]
    strategies: StrategyBucket
    response_time_ms: int


@dataclass(frozen=True)
class CacheInfo:
    balances_at: Optional[int]
    strategies_at: Optional[int]


def cache_key(namespace: str, address: str, api_key: Optional[str]) -> str:
    return f"{namespace}:{address}:{api_key or ''}"


def _number(value: Any) -> Optional[float]:
    # bool is an int subclass but never a balance.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _direct_total(data: Dict[str, Any]) -> Optional[float]:
    total = data.get("total")
    if isinstance(total, dict):
        usd = _number(total.get("usd"))
        if usd is not None:
            return usd
    for key in ("totalUsd", "usdTotal"):
        usd = _number(data.get(key))
        if usd is not None:
            return usd
    return None


def _portfolio_sum(data: Dict[str, Any]) -> Optional[float]:
    networks = data.get("portfolio")
    if not isinstance(networks, list):
        return None
    total = 0.0
    for network in networks:
        tokens = network.get("tokens") if isinstance(network, dict) else None
        if not isinstance(tokens, list):
            continue
        for token in tokens:
            if isinstance(token, dict):
                total += _number(token.get("balanceUSD")) or 0.0
    return total


def _assets_sum(data: Dict[str, Any]) -> Optional[float]:
    assets = data.get("assets")
    if not isinstance(assets, list):
        return None
    total = 0.0
    for asset in assets:
        if not isinstance(asset, dict):
            continue
        for key in ("usdValue", "usd", "valueUsd"):
            value = _number(asset.get(key))
            if value is not None:
                total += value
                break
    return total


# Tried in order; the first rule producing a positive number wins.
PRINCIPAL_RULES: Sequence[Tuple[str, Callable[[Dict[str, Any]], Optional[float]]]] = (
    ("direct-total", _direct_total),
    ("portfolio-networks", _portfolio_sum),
    ("legacy-assets", _assets_sum),
)


def extract_principal(data: Any) -> Optional[float]:
    """Return the wallet's USD total, or None when no known response shape matches."""
    if not isinstance(data, dict):
        return None
    for tag, rule in PRINCIPAL_RULES:
        value = rule(data)
        if value is not None and value > 0:
            logger.debug("Principal extracted with rule %s: %s", tag, value)
            return value
    return None


def _to_strategy(item: Dict[str, Any]) -> Strategy:
    actions = item.get("actions") or []
    action = actions[0] if isinstance(actions, list) and actions and isinstance(actions[0], dict) else {}

    apy = action.get("apy")
    platforms = []
    raw_platforms = action.get("platforms")
    for platform in raw_platforms if isinstance(raw_platforms, list) else []:
        if isinstance(platform, dict) and platform.get("name"):
            platforms.append(str(platform["name"]))
    description = action.get("description")

    return Strategy(
        name=str(item.get("name") or "Unnamed strategy"),
        apy=str(apy) if apy not in (None, "") else None,
        platforms=tuple(platforms),
        description=str(description) if description else None,
    )


def normalize_strategies(data: Any, limit: int = MAX_STRATEGIES_PER_BUCKET) -> StrategyBucket:
    bucket = StrategyBucket()
    if not isinstance(data, dict):
        return bucket
    groups = data.get("strategies")
    if not isinstance(groups, list) or not groups or not isinstance(groups[0], dict):
        return bucket
    items = groups[0].get("response")
    if not isinstance(items, list):
        return bucket

    for item in items:
        if not isinstance(item, dict):
            continue
        tier = RISK_BUCKETS.get(str(item.get("risk") or "").strip().lower())
        if tier is None:
            continue
        strategies: List[Strategy] = getattr(bucket, tier)
        if len(strategies) < limit:
            strategies.append(_to_strategy(item))
    return bucket


class PortfolioGateway:
    """
    Turns a wallet address into a USD principal and risk-bucketed yield ideas.

    Raw AURA responses are cached under ``balances:`` and ``strategies:``
    keys; the principal flow raises on remote failures while strategy lookups
    degrade to an empty bucket.
    """

    def __init__(self, client: AuraClient, cache: ResponseCache):
        self.client = client
        self.cache = cache

    async def get_principal(self, address: str, api_key: Optional[str] = None) -> PrincipalResult:
        key = cache_key(BALANCES_NAMESPACE, address, api_key)
        cached = self.cache.get(key)
        if cached is not None:
            principal = extract_principal(cached)
            logger.info("address=%s cached=True response_time_ms=0 principal_usd=%s", address, principal)
            return PrincipalResult(principal=principal, cached=True, response_time_ms=0)

        started = time.perf_counter()
        try:
            data = await self.client.fetch_balances(address, api_key)
        except AuraError as exc:
            elapsed = _elapsed_ms(started)
            logger.info(
                "address=%s cached=False response_time_ms=%s principal_usd=None error=%s", address, elapsed, exc
            )
            raise
        elapsed = _elapsed_ms(started)

        self.cache.set(key, data)
        principal = extract_principal(data)
        logger.info("address=%s cached=False response_time_ms=%s principal_usd=%s", address, elapsed, principal)
        return PrincipalResult(principal=principal, cached=False, response_time_ms=elapsed)

    async def get_strategies(self, address: str, api_key: Optional[str] = None) -> StrategyBucket:
        key = cache_key(STRATEGIES_NAMESPACE, address, api_key)
        data = self.cache.get(key)
        try:
            if data is None:
                data = await self.client.fetch_strategies(address, api_key)
                self.cache.set(key, data)
            return normalize_strategies(data)
        except Exception:
            logger.warning("Strategy lookup failed for %s; continuing without suggestions.", address, exc_info=True)
            return StrategyBucket()

    async def refetch(self, address: str, api_key: Optional[str] = None) -> RefetchResult:
        self.cache.invalidate(cache_key(BALANCES_NAMESPACE, address, api_key))
        self.cache.invalidate(cache_key(STRATEGIES_NAMESPACE, address, api_key))

        started = time.perf_counter()
        principal_result, strategies = await asyncio.gather(
            self.get_principal(address, api_key),
            self.get_strategies(address, api_key),
            return_exceptions=True,
        )
        elapsed = _elapsed_ms(started)

        principal: Optional[float] = None
        if isinstance(principal_result, BaseException):
            logger.warning("Balance refetch failed for %s: %s", address, principal_result)
        else:
            principal = principal_result.principal
        if isinstance(strategies, BaseException):
            logger.warning("Strategy refetch failed for %s: %s", address, strategies)
            strategies = StrategyBucket()

        return RefetchResult(principal=principal, strategies=strategies, response_time_ms=elapsed)

    def get_cache_info(self, address: str, api_key: Optional[str] = None) -> CacheInfo:
        return CacheInfo(
            balances_at=self.cache.get_timestamp(cache_key(BALANCES_NAMESPACE, address, api_key)),
            strategies_at=self.cache.get_timestamp(cache_key(STRATEGIES_NAMESPACE, address, api_key)),
        )


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
