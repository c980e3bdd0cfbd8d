"""Persistent preferences for Yahtzee.

Stores the preferred AI level and playback speed in
~/.yahtzee_duel_settings.json. Games themselves are never saved.
"""

import json
from pathlib import Path

DEFAULTS = {
    "ai_level": "intermediate",
    "speed": "normal",
}

AI_LEVELS = ("beginner", "intermediate", "expert")
SPEEDS = ("slow", "normal", "fast", "instant")

_ALLOWED = {
    "ai_level": AI_LEVELS,
    "speed": SPEEDS,
}


def _default_path():
    """Return the default path for the settings file."""
    return Path.home() / ".yahtzee_duel_settings.json"


def load_settings(path=None):
    """Load settings from JSON file. Returns DEFAULTS on missing/corrupt.

    Merges with DEFAULTS so missing keys get default values.
    Unknown keys and out-of-range values are ignored.
    """
    if path is None:
        path = _default_path()
    path = Path(path)
    try:
        data = json.loads(path.read_text())
        if not isinstance(data, dict):
            return dict(DEFAULTS)
        result = dict(DEFAULTS)
        for key in DEFAULTS:
            if key in data and data[key] in _ALLOWED[key]:
                result[key] = data[key]
        return result
    except (FileNotFoundError, json.JSONDecodeError, OSError):
        return dict(DEFAULTS)


def save_settings(settings, path=None):
    """Write settings dict to JSON. Silently ignores write errors."""
    if path is None:
        path = _default_path()
    path = Path(path)
    try:
        path.write_text(json.dumps(settings, indent=2))
    except OSError:
        pass
