# pzem_monitor/schemas.py
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import Measurement


def to_naive_utc(dt: datetime) -> datetime:
    # Naive datetimes are taken as UTC already
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def iso_utc(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class MeasurementIn(BaseModel):
    """Body of POST /api/data as sent by the meters."""
    model_config = ConfigDict(extra="ignore")

    device_id: str
    voltage: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    current: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    power: Optional[float] = Field(default=None, allow_inf_nan=False)
    energy: Optional[float] = Field(default=None, allow_inf_nan=False)  # cumulative counter, kWh
    frequency: Optional[float] = Field(default=None, allow_inf_nan=False)
    timestamp: Optional[datetime] = None

    @field_validator("device_id")
    @classmethod
    def device_id_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("device_id must be a non-empty string")
        return v

    @field_validator("timestamp", mode="before")
    @classmethod
    def timestamp_is_iso_string(cls, v):
        # pydantic would also take unix numbers; meters must send ISO-8601 text
        if v is not None and not isinstance(v, (str, datetime)):
            raise ValueError("timestamp must be an ISO-8601 string")
        return v

    @field_validator("timestamp")
    @classmethod
    def timestamp_to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v) if v is not None else None


def measurement_to_json(m: Optional[Measurement]):
    if m is None:
        return None
    return {
        "id": m.id,
        "device_id": m.device_id,
        "voltage": m.voltage,
        "current": m.current,
        "power": m.power,
        "energy": m.energy,
        "lastEnergy": m.last_energy,
        "frequency": m.frequency,
        "timestamp": iso_utc(m.timestamp),
        "createdAt": iso_utc(m.created_at),
        "updatedAt": iso_utc(m.updated_at),
    }
