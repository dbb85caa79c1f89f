"""Display helpers shared by email templates and calendar events."""

from typing import Any, Optional


def format_idr(value: Optional[Any]) -> str:
    """Format an amount as Rupiah, e.g. ``Rp 75.000``."""
    if value is None:
        return "-"
    return "Rp " + f"{int(value):,}".replace(",", ".")


def format_duration(minutes: Optional[Any]) -> str:
    """
    Spell a service duration in Indonesian.

    45 -> "45 menit", 60 -> "1 jam", 90 -> "1 jam 30 menit".
    """
    if minutes is None:
        return "-"
    minutes = int(minutes)
    if minutes < 60:
        return f"{minutes} menit"
    hours, remainder = divmod(minutes, 60)
    if remainder == 0:
        return f"{hours} jam"
    return f"{hours} jam {remainder} menit"
