from __future__ import annotations
import logging

logger = logging.getLogger(__name__)

LOCAL_FEATURE_FLAGS: dict[str, bool] = {
    # activities
    "multiplication-activity": False,
    "division-activity": False,
    "fractions-activity": False,
    # ui
    "new-confetti-animation": True,
    "sound-effects": True,
    "adaptive-difficulty": True,
    "parent-dashboard": True,
    # experimental
    "ai-hints": False,
    "voice-input": False,
    "multiplayer-mode": False,
}

# activity -> flag that gates it in the menu
ACTIVITY_FLAGS: dict[str, str] = {
    "multiplication": "multiplication-activity",
    "division": "division-activity",
}

_ON = {"1", "on", "true", "yes", "enabled"}
_OFF = {"0", "off", "false", "no", "disabled"}

def parse_flag_overrides(raw: str | None) -> dict[str, bool]:
    """Parse `name=on,other=off`. A bare name means on; unknown values are skipped."""
    out: dict[str, bool] = {}
    for chunk in (raw or "").split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        name, sep, value = chunk.partition("=")
        name = name.strip().lower()
        value = value.strip().lower() if sep else "on"
        if not name:
            continue
        if value in _ON:
            out[name] = True
        elif value in _OFF:
            out[name] = False
        else:
            logger.warning("feature_flag_bad_value flag=%s value=%s", name, value)
    return out

class FeatureFlagService:
    def __init__(self, overrides: dict[str, bool] | None = None):
        self._flags = dict(LOCAL_FEATURE_FLAGS)
        self._flags.update(overrides or {})

    @classmethod
    def from_env_value(cls, raw: str | None) -> "FeatureFlagService":
        return cls(parse_flag_overrides(raw))

    def is_enabled(self, flag: str) -> bool:
        return self._flags.get(flag, False)

    def activity_enabled(self, activity: str) -> bool:
        flag = ACTIVITY_FLAGS.get(activity)
        return True if flag is None else self.is_enabled(flag)

    def enabled_flags(self) -> list[str]:
        return sorted(name for name, on in self._flags.items() if on)
