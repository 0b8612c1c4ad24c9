"""Number formatting shared by explanation and summary templates."""


def format_pct(value: float) -> str:
    """37.0 -> '37', 37.5 -> '37.5'."""
    return f"{value:g}"


def format_usd(amount: float) -> str:
    """Whole-dollar amount with thousands separators: 1540000.4 -> '$1,540,000'."""
    return f"${round(amount):,}"


def format_millions(amount: float) -> str:
    """6160000 -> '$6.2M'."""
    return f"${amount / 1e6:.1f}M"
