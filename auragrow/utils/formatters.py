import math
from typing import Optional, Union

Number = Union[int, float]


def format_usd(value: Optional[Number]) -> str:
    if value is None:
        return "N/A"
    num = float(value)
    if not math.isfinite(num):
        return "N/A"
    if num < 0:
        return f"-${abs(num):,.2f}"
    return f"${num:,.2f}"


def format_percent(value: Optional[Number]) -> str:
    if value is None or not math.isfinite(value):
        return "N/A"
    return f"{float(value):.2f}%"


def format_years(years: int) -> str:
    return f"{years} {'year' if years == 1 else 'years'}"


def format_time_ago(timestamp_ms: Optional[int], now_ms: int) -> str:
    if timestamp_ms is None:
        return "never"

    diff = now_ms - timestamp_ms
    minutes = diff // 60_000
    hours = diff // 3_600_000
    days = diff // 86_400_000

    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    return f"{days}d ago"
