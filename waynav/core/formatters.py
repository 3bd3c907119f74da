# HUD text helpers shared by the navigation session and the API.

import re

CONTINUE_STRAIGHT = "Continue straight"
DEPART = "Depart"

ICON_TURN_LEFT = "turn-left"
ICON_TURN_RIGHT = "turn-right"
ICON_STRAIGHT = "straight"

_TAG_RE = re.compile(r"<[^>]+>")


def fmt_distance(meters: float) -> str:
    """'850 m' below a kilometre, '12.8 km' above."""
    meters = max(0.0, meters)
    if meters < 1000:
        return f"{meters:.0f} m"
    return f"{meters / 1000.0:.1f} km"


def fmt_duration(seconds: float) -> str:
    """'1 h 5 min' or '42 min'."""
    total = int(max(0.0, seconds))
    hours = total // 3600
    minutes = (total % 3600) // 60
    if hours > 0:
        return f"{hours} h {minutes} min"
    return f"{minutes} min"


def icon_hint_for(instruction_text: str) -> str:
    """Pick a maneuver icon from the wording of an instruction."""
    text = instruction_text.lower()
    if "left" in text:
        return ICON_TURN_LEFT
    if "right" in text:
        return ICON_TURN_RIGHT
    return ICON_STRAIGHT


def strip_html(text: str) -> str:
    """Directions services wrap road names in markup; the HUD wants plain text."""
    return " ".join(_TAG_RE.sub(" ", text).split())
