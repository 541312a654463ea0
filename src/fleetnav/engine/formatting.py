# formatting.py
# Human-readable strings for HUD panels and console output.


def format_distance(meters: float) -> str:
    """'1.2 km' from 1000 m upwards, otherwise whole metres."""
    if meters >= 1000:
        return f"{meters / 1000:.1f} km"
    return f"{int(round(meters))} m"


def format_duration(total_seconds: float) -> str:
    """'45 s', '12 min', '1 h 5 min' or '2 h'."""
    if total_seconds < 60:
        return f"{int(round(total_seconds))} s"
    if total_seconds < 3600:
        return f"{int(round(total_seconds / 60))} min"
    hours = int(total_seconds // 3600)
    minutes = int(round((total_seconds % 3600) / 60))
    if minutes == 60:
        hours, minutes = hours + 1, 0
    return f"{hours} h {minutes} min" if minutes else f"{hours} h"
