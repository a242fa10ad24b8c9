"""
Human-readable formatting for energy values and durations.
"""


def format_eu(value: float) -> str:
    """Format an EU amount with a G/M/k prefix"""
    abs_value = abs(value)
    if abs_value >= 1_000_000_000:
        return f"{value / 1_000_000_000:.2f} GEU"
    elif abs_value >= 1_000_000:
        return f"{value / 1_000_000:.2f} MEU"
    elif abs_value >= 1_000:
        return f"{value / 1_000:.2f} kEU"
    return f"{value:.0f} EU"


def format_duration(seconds: float | None) -> str:
    """Format seconds as 45s, 3m 20s, 2h 5m or 1d 4h"""
    if seconds is None or seconds <= 0:
        return "N/A"

    if seconds < 60:
        return f"{seconds:.0f}s"
    elif seconds < 3600:
        minutes, rest = divmod(int(seconds), 60)
        return f"{minutes}m {rest}s"
    elif seconds < 86400:
        hours, rest = divmod(int(seconds), 3600)
        return f"{hours}h {rest // 60}m"

    days, rest = divmod(int(seconds), 86400)
    return f"{days}d {rest // 3600}h"
