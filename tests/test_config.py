from __future__ import annotations

import pytest

from designcast.core.config import (
    THROTTLE_KEY_COMMIT_TYPE,
    build_commit_types,
    build_destinations,
    build_guard_config,
    build_mention_groups,
    build_throttle_config,
)
from designcast.core.errors import ConfigError


def test_default_commit_types() -> None:
    types = build_commit_types()
    assert len(types) == 11
    assert types["breaking"].priority == "critical"
    assert types["patch"].default_notify is False
    assert types["feat"].emoji == "✨"


def test_tables_are_read_only() -> None:
    types = build_commit_types()
    with pytest.raises(TypeError):
        types["new"] = types["feat"]  # type: ignore[index]


def test_duplicate_commit_type_rejected() -> None:
    with pytest.raises(ConfigError):
        build_commit_types([{"name": "feat"}, {"name": "FEAT"}])


def test_build_destinations_skips_disabled_and_normalizes() -> None:
    types = build_commit_types()
    destinations = build_destinations(
        [
            {
                "id": "abc",
                "name": "Foundations",
                "send_target": "@updates",
                "rules": {"always_notify": ["FEAT"], "never_notify": ["chore"]},
                "throttle_minutes": {"Normal": 15},
            },
            {"id": "off", "send_target": "@x", "enabled": False},
        ],
        types,
    )
    assert list(destinations) == ["abc"]
    policy = destinations["abc"]
    assert policy.always_notify == frozenset({"feat"})
    assert policy.never_notify == frozenset({"chore"})
    assert dict(policy.throttle_minutes) == {"normal": 15}


def test_destination_without_throttle_is_unthrottled() -> None:
    destinations = build_destinations([{"id": "abc", "send_target": "@x"}], build_commit_types())
    assert destinations["abc"].throttle_minutes is None
    assert destinations["abc"].display_name == "abc"


def test_unknown_type_in_rules_rejected() -> None:
    with pytest.raises(ConfigError):
        build_destinations(
            [{"id": "abc", "send_target": "@x", "rules": {"never_notify": ["wip"]}}],
            build_commit_types(),
        )


def test_overlapping_rules_rejected() -> None:
    with pytest.raises(ConfigError):
        build_destinations(
            [
                {
                    "id": "abc",
                    "send_target": "@x",
                    "rules": {"always_notify": ["feat"], "never_notify": ["feat"]},
                }
            ],
            build_commit_types(),
        )


def test_missing_send_target_rejected() -> None:
    with pytest.raises(ConfigError):
        build_destinations([{"id": "abc"}], build_commit_types())


def test_guard_and_throttle_defaults() -> None:
    guard = build_guard_config(None)
    assert guard.dedup_window_seconds == 300
    assert guard.max_requests_per_window == 5
    throttle = build_throttle_config({"key": THROTTLE_KEY_COMMIT_TYPE})
    assert throttle.key == THROTTLE_KEY_COMMIT_TYPE
    with pytest.raises(ConfigError):
        build_throttle_config({"key": "moon_phase"})


def test_mention_groups_lowercase_keys() -> None:
    assert dict(build_mention_groups({"Designers": "@design_team"})) == {"designers": "@design_team"}
