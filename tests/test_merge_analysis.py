"""Tests for the pure merge classification used by the mirror refresh."""

from mirror import MergeAnalysis, MergeKind, classify_merge
from mirror.sync import RefreshResult, RefreshStatus, SyncDivergedError


LOCAL = "a" * 40
FETCHED = "b" * 40


def test_same_head_is_up_to_date():
    assert classify_merge(LOCAL, LOCAL, False, False) == MergeAnalysis.up_to_date()


def test_local_behind_is_fast_forward():
    analysis = classify_merge(LOCAL, FETCHED, local_is_ancestor=True, fetched_is_ancestor=False)

    assert analysis.kind == MergeKind.FAST_FORWARD
    assert analysis.target == FETCHED


def test_local_ahead_is_up_to_date():
    analysis = classify_merge(LOCAL, FETCHED, local_is_ancestor=False, fetched_is_ancestor=True)

    assert analysis.kind == MergeKind.UP_TO_DATE
    assert analysis.target is None


def test_unrelated_histories_diverge():
    analysis = classify_merge(LOCAL, FETCHED, local_is_ancestor=False, fetched_is_ancestor=False)

    assert analysis == MergeAnalysis.diverged()


def test_refresh_result_to_dict():
    error = SyncDivergedError(LOCAL, FETCHED)
    result = RefreshResult(RefreshStatus.DIVERGED, head=LOCAL, previous_head=LOCAL, error=error)

    assert not result.ok
    assert result.to_dict() == {
        "status": "diverged",
        "head": LOCAL,
        "previous_head": LOCAL,
        "error": str(error),
    }
    assert LOCAL[:12] in str(error) and FETCHED[:12] in str(error)
