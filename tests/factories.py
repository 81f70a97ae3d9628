"""Test factories — endpoints and samples with fixed, predictable timestamps."""

from datetime import datetime, timedelta, timezone

from latency_monitor.core.domain_types import Endpoint, EndpointId, Sample, SampleStatus

T0 = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_endpoint(
    endpoint_id: str, host: str = "127.0.0.1", port: int = 443, **fields,
) -> Endpoint:
    return Endpoint(
        id=EndpointId(endpoint_id),
        host=host,
        port=port,
        exchange=fields.get("exchange", "TestEx"),
        provider=fields.get("provider", "AWS"),
        region_code=fields.get("region_code", "us-east-1"),
        lat=fields.get("lat", 0.0),
        lng=fields.get("lng", 0.0),
    )


def make_sample(
    endpoint: Endpoint,
    offset_s: float = 0,
    rtt_ms: int | None = 10,
    status: SampleStatus = SampleStatus.OK,
) -> Sample:
    ts = T0 + timedelta(seconds=offset_s)
    if status is SampleStatus.OK:
        return Sample.ok(endpoint, ts, rtt_ms)
    return Sample.failed(endpoint, ts, status)
