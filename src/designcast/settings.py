"""Static configuration for designcast.

All user-editable settings (commit types, destinations, mention groups,
guard windows, notifications, logging) live in a single JSON file for quick
edits without touching Python. Secrets stay in the environment.
"""

import json
import os

from designcast.core.config import (
    build_commit_types,
    build_destinations,
    build_formatter_config,
    build_guard_config,
    build_mention_groups,
    build_throttle_config,
)

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))

# DESIGNCAST_CONFIG points at an alternative config file, e.g. per deployment.
CONFIG_PATH = os.getenv("DESIGNCAST_CONFIG") or os.path.join(PROJECT_ROOT, "config.json")


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Commit types fall back to the built-in semantic commit set when omitted.
COMMIT_TYPES = build_commit_types(_CONFIG.get("commit_types"))

# One entry per monitored Figma library, keyed by file key.
DESTINATIONS = build_destinations(_CONFIG.get("destinations", []), COMMIT_TYPES)

# Mention names resolve to platform tags, e.g. "designers" -> "@design_team".
MENTION_GROUPS = build_mention_groups(_CONFIG.get("mention_groups"))

# Dedup, rate limiting and retention windows.
GUARD = build_guard_config(_CONFIG.get("guard"))

# Throttling: which key selects the window ("priority" or "commit_type").
THROTTLE = build_throttle_config(_CONFIG.get("throttle"))

_notifications = _CONFIG.get("notifications", {})
FORMATTER = build_formatter_config(_notifications)
# Notification method switches adapters without changing core logic.
NOTIFICATION_METHOD = _notifications.get("notification_method", "bot")

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
