"""Business logic modules."""

from .growth import GrowthPoint, GrowthSummary, build_series, compound_growth, simple_growth, summarize_growth
from .guard import GuardState, RequestGuard
from .portfolio import PortfolioGateway, StrategyBucket, extract_principal

__all__ = [
    "GrowthPoint",
    "GrowthSummary",
    "GuardState",
    "PortfolioGateway",
    "RequestGuard",
    "StrategyBucket",
    "build_series",
    "compound_growth",
    "extract_principal",
    "simple_growth",
    "summarize_growth",
]
