"""Roster Schemas — validation of the endpoint configuration file.

Invariants:
    - Every entry has a non-empty id and host, a port in 1..65535, lat/lng in range
    - JSON keys are camelCase (regionCode); populate_by_name also accepts region_code
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from latency_monitor.core.domain_types import Endpoint, EndpointId


class EndpointConfig(BaseModel):
    """One roster entry as written in servers.json."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(min_length=1)
    host: str = Field(min_length=1)
    port: int = Field(443, ge=1, le=65535)
    exchange: str = ""
    provider: str = ""
    region_code: str = Field("", alias="regionCode")
    lat: float = Field(0.0, ge=-90, le=90)
    lng: float = Field(0.0, ge=-180, le=180)

    @field_validator("id", "host")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty or whitespace")
        return v

    def to_endpoint(self) -> Endpoint:
        return Endpoint(
            id=EndpointId(self.id),
            host=self.host,
            port=self.port,
            exchange=self.exchange,
            provider=self.provider,
            region_code=self.region_code,
            lat=self.lat,
            lng=self.lng,
        )
