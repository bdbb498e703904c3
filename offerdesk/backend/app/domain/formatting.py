from __future__ import annotations


def format_price(value: float | None) -> str:
    """
    $275,000 for whole amounts, $275,000.50 otherwise. None renders as $0.
    """
    if value is None:
        return "$0"
    v = float(value)
    if v == int(v):
        return f"${int(v):,}"
    return f"${v:,.2f}"


def full_name(first_name: str | None, last_name: str | None) -> str:
    return f"{first_name or ''} {last_name or ''}".strip()
