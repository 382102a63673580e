"""Simple versus compound growth of a principal."""

import math
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class GrowthPoint:
    year: int
    simple: float
    compound: float


@dataclass(frozen=True)
class GrowthSummary:
    """End-of-horizon values shown next to the chart."""

    principal: float
    rate_pct: float
    years: int
    final_simple: float
    final_compound: float
    uplift_abs: float
    uplift_pct: Optional[float]


def simple_growth(principal: float, rate_pct: float, years: float) -> float:
    return principal * (1 + (rate_pct / 100) * years)


def compound_growth(principal: float, rate_pct: float, years: float) -> float:
    try:
        factor = math.pow(1 + rate_pct / 100, years)
    except OverflowError:
        factor = math.inf
    except ValueError:
        # Negative base with a fractional exponent has no real result.
        factor = math.nan
    return principal * factor


def build_series(principal: float, rate_pct: float, years: int) -> List[GrowthPoint]:
    """One point per whole year from 0 through ``years`` inclusive."""
    return [
        GrowthPoint(
            year=year,
            simple=simple_growth(principal, rate_pct, year),
            compound=compound_growth(principal, rate_pct, year),
        )
        for year in range(int(years) + 1)
    ]


def summarize_growth(principal: float, rate_pct: float, years: int) -> GrowthSummary:
    final_simple = simple_growth(principal, rate_pct, years)
    final_compound = compound_growth(principal, rate_pct, years)
    uplift_abs = final_compound - final_simple
    uplift_pct = (uplift_abs / final_simple) * 100 if final_simple else None
    return GrowthSummary(
        principal=principal,
        rate_pct=rate_pct,
        years=years,
        final_simple=final_simple,
        final_compound=final_compound,
        uplift_abs=uplift_abs,
        uplift_pct=uplift_pct,
    )
