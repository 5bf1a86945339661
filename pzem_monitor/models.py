# pzem_monitor/models.py
from sqlalchemy import Column, Integer, Float, DateTime, String, Index
from sqlalchemy.orm import declarative_base
from datetime import datetime, timezone

Base = declarative_base()

def utcnow() -> datetime:
    # Stored naive, always UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)

class Measurement(Base):
    __tablename__ = "measurements"
    id = Column(Integer, primary_key=True, index=True)
    device_id = Column(String, nullable=False, index=True)
    voltage = Column(Float, nullable=True)     # V
    current = Column(Float, nullable=True)     # A
    power = Column(Float, nullable=True)       # W, signed
    # energy booked for the interval ending at this sample (kWh)
    energy = Column(Float, nullable=False, default=0.0)
    # cumulative counter as reported by the meter (kWh), baseline for the next sample
    last_energy = Column(Float, nullable=True)
    frequency = Column(Float, nullable=True)   # Hz
    timestamp = Column(DateTime, nullable=False, index=True)   # sample time (UTC)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_measurements_device_timestamp", "device_id", "timestamp"),
    )
