"""Error hierarchy — codes, HTTP statuses and response envelopes."""

from latency_monitor.core.errors import (
    BadRequestError,
    ErrorCategory,
    FeedConnectionError,
    LatencyMonitorError,
    ProbeConnectError,
    ProbeError,
    ProbeTimeout,
    UnknownEndpointError,
)


def test_bad_request_is_400_validation():
    err = BadRequestError("serverId required", "serverId")
    assert err.http_status == 400
    assert err.category is ErrorCategory.VALIDATION
    assert err.to_response()["error"]["code"] == "BAD_REQUEST"


def test_probe_errors_share_base():
    assert issubclass(ProbeTimeout, ProbeError)
    assert issubclass(ProbeConnectError, ProbeError)
    assert issubclass(ProbeError, LatencyMonitorError)


def test_probe_connect_error_keeps_reason():
    err = ProbeConnectError("h", 443, "Connection refused")
    assert err.reason == "Connection refused"
    assert err.message == "Connection refused"


def test_unknown_endpoint_sets_context():
    err = UnknownEndpointError("zz")
    assert err.to_response()["error"]["context"]["endpoint_id"] == "zz"


def test_feed_error_carries_retry_after():
    err = FeedConnectionError("rate limited", retry_after_ms=2000)
    assert err.to_response()["error"]["context"]["retry_after_ms"] == 2000


def test_timeout_error_envelope():
    err = ProbeTimeout("h", 443, 4000)
    body = err.to_response()["error"]
    assert err.http_status == 504
    assert body["code"] == "PROBE_TIMEOUT"
    assert body["severity"] == "warning"
