from __future__ import annotations

from designcast.core.config import GuardConfig
from designcast.core.guard import REASON_DUPLICATE, REASON_RATE_LIMITED, GuardState, compute_fingerprint


def test_fingerprint_buckets_by_ten_seconds() -> None:
    base = compute_fingerprint("file", "feat: x", "ana", 1000.0)
    assert compute_fingerprint("file", "  feat: x \n", "ana", 1009.9) == base
    assert compute_fingerprint("file", "feat: x", "ana", 1010.0) != base
    assert compute_fingerprint("other", "feat: x", "ana", 1000.0) != base
    assert compute_fingerprint("file", "feat: x", "bo", 1000.0) != base


def test_duplicate_within_bucket_rejected() -> None:
    guard = GuardState()
    first = guard.admit("file", "feat: x", "ana", 1000.0)
    second = guard.admit("file", "feat: x", "ana", 1003.0)
    assert first.admitted is True
    assert second.admitted is False
    assert second.reason == REASON_DUPLICATE
    assert second.fingerprint == first.fingerprint


def test_duplicate_does_not_consume_rate_budget() -> None:
    guard = GuardState(GuardConfig(max_requests_per_window=2))
    assert guard.admit("file", "feat: a", "ana", 1000.0).admitted
    for _ in range(5):
        assert not guard.admit("file", "feat: a", "ana", 1001.0).admitted
    assert guard.admit("file", "feat: b", "ana", 1002.0).admitted


def test_sixth_request_in_window_is_rate_limited() -> None:
    guard = GuardState()
    results = [guard.admit("file", f"feat: change {i}", "ana", 1000.0 + i) for i in range(6)]
    assert [r.admitted for r in results] == [True] * 5 + [False]
    assert results[-1].reason == REASON_RATE_LIMITED

    # Other destinations keep their own budget.
    assert guard.admit("other", "feat: change 0", "ana", 1005.0).admitted


def test_new_window_admits_again() -> None:
    guard = GuardState()
    for i in range(5):
        assert guard.admit("file", f"feat: change {i}", "ana", 1000.0 + i).admitted
    assert not guard.admit("file", "feat: late", "ana", 1010.0).admitted
    assert guard.admit("file", "feat: next window", "ana", 1035.0).admitted


def test_fingerprint_expires_after_dedup_window() -> None:
    guard = GuardState(GuardConfig(dedup_window_seconds=5, fingerprint_bucket_seconds=60))
    assert guard.admit("file", "feat: x", "ana", 0.0).admitted
    assert not guard.admit("file", "feat: x", "ana", 4.0).admitted
    assert guard.admit("file", "feat: x", "ana", 6.0).admitted


def test_cleanup_prunes_expired_state() -> None:
    guard = GuardState()
    guard.admit("file", "feat: x", "ana", 1000.0)
    guard.mark_notified("file", 1000.0)
    assert guard.snapshot() == {"seen_fingerprints": 1, "request_windows": 1, "last_notified": 1}

    assert guard.cleanup(1100.0) == 1
    assert guard.snapshot() == {"seen_fingerprints": 1, "request_windows": 0, "last_notified": 1}

    guard.cleanup(1000.0 + 24 * 60 * 60)
    assert guard.snapshot() == {"seen_fingerprints": 0, "request_windows": 0, "last_notified": 0}


def test_mark_notified() -> None:
    guard = GuardState()
    assert guard.last_notified_at("file") is None
    guard.mark_notified("file", 42.0)
    assert guard.last_notified_at("file") == 42.0


def test_cleanup_keeps_send_mark_within_longer_window() -> None:
    guard = GuardState()
    guard.mark_notified("file", 1000.0)

    guard.cleanup(1000.0 + 25 * 60 * 60, notified_retention_seconds=2000 * 60)
    assert guard.last_notified_at("file") == 1000.0

    guard.cleanup(1000.0 + 2000 * 60)
    assert guard.last_notified_at("file") == 1000.0

    guard.cleanup(1000.0 + 2000 * 60, notified_retention_seconds=2000 * 60)
    assert guard.last_notified_at("file") is None
