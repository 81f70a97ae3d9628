"""History Query — inclusive time windows over one endpoint's history.

Tests cover:
    - Inclusive [from, to] bounds; omitted bounds are unbounded
    - Exactly one sample at t0 for from=to=t0
    - Missing endpoint id raises before the store is read
    - Unknown id returns an empty list
    - Append order preserved, store untouched
"""

from datetime import timedelta

import pytest

from latency_monitor.core.domain_types import format_timestamp, parse_timestamp
from latency_monitor.core.errors import BadRequestError
from latency_monitor.core.history_query import filter_window, query_history
from tests.factories import T0, make_sample


@pytest.fixture
def filled_store(store, endpoint_a):
    for i in range(10):
        store.commit(make_sample(endpoint_a, offset_s=i, rtt_ms=i))
    return store


def _rtts(samples):
    return [s.rtt_ms for s in samples]


def test_no_bounds_returns_everything(filled_store):
    assert _rtts(query_history(filled_store, "a")) == list(range(10))


def test_bounds_are_inclusive(filled_store):
    result = query_history(
        filled_store, "a", T0 + timedelta(seconds=3), T0 + timedelta(seconds=6),
    )
    assert _rtts(result) == [3, 4, 5, 6]


def test_only_from_bound(filled_store):
    result = query_history(filled_store, "a", start=T0 + timedelta(seconds=8))
    assert _rtts(result) == [8, 9]


def test_only_to_bound(filled_store):
    result = query_history(filled_store, "a", end=T0 + timedelta(seconds=1))
    assert _rtts(result) == [0, 1]


def test_single_instant_window_returns_one_sample(filled_store):
    t0 = parse_timestamp(format_timestamp(T0 + timedelta(seconds=4)))
    result = query_history(filled_store, "a", t0, t0)
    assert _rtts(result) == [4]


def test_empty_window_when_from_after_to(filled_store):
    result = query_history(
        filled_store, "a", T0 + timedelta(seconds=5), T0 + timedelta(seconds=2),
    )
    assert result == []


def test_naive_bounds_are_treated_as_utc(filled_store):
    naive = (T0 + timedelta(seconds=9)).replace(tzinfo=None)
    assert _rtts(query_history(filled_store, "a", start=naive)) == [9]


@pytest.mark.parametrize("missing", [None, ""])
def test_missing_endpoint_id_is_bad_request(missing):
    class ExplodingSource:
        def history(self, endpoint_id):
            raise AssertionError("store must not be read")

    with pytest.raises(BadRequestError) as exc:
        query_history(ExplodingSource(), missing)
    assert exc.value.http_status == 400
    assert exc.value.param == "serverId"


def test_unknown_endpoint_id_yields_empty(filled_store):
    assert query_history(filled_store, "unknown") == []


def test_query_does_not_mutate_store(filled_store):
    query_history(filled_store, "a", T0, T0)
    assert filled_store.history_length("a") == 10


def test_filter_window_preserves_append_order_when_unsorted(endpoint_a):
    samples = [
        make_sample(endpoint_a, offset_s=5, rtt_ms=1),
        make_sample(endpoint_a, offset_s=2, rtt_ms=2),
        make_sample(endpoint_a, offset_s=4, rtt_ms=3),
    ]
    result = filter_window(samples, T0 + timedelta(seconds=3))
    assert _rtts(result) == [1, 3]
