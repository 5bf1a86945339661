# pzem_monitor/store.py
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from .errors import StorageError
from .models import Measurement, utcnow


class MeasurementStore:
    """
    Append-only access to the measurements table. Each call opens its own
    session; SQLAlchemy failures surface as StorageError after rollback.
    """

    def __init__(self, session_factory, clock: Optional[Callable[[], datetime]] = None):
        self._session_factory = session_factory
        self.clock = clock or utcnow

    @contextmanager
    def _session(self):
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageError(str(e)) from e
        finally:
            session.close()

    @staticmethod
    def _filtered(query, device_id: Optional[str] = None,
                  start: Optional[datetime] = None, end: Optional[datetime] = None):
        if device_id:
            query = query.filter(Measurement.device_id == device_id)
        if start is not None:
            query = query.filter(Measurement.timestamp >= start)
        if end is not None:
            query = query.filter(Measurement.timestamp <= end)
        return query

    def insert(self, **fields) -> Measurement:
        now = self.clock()
        m = Measurement(created_at=now, updated_at=now, **fields)
        with self._session() as session:
            session.add(m)
            session.commit()
        return m

    def latest(self, device_id: Optional[str] = None) -> Optional[Measurement]:
        with self._session() as session:
            q = self._filtered(session.query(Measurement), device_id)
            return q.order_by(Measurement.timestamp.desc(), Measurement.id.desc()).first()

    def find(self, device_id: Optional[str] = None, start: Optional[datetime] = None,
             end: Optional[datetime] = None, skip: int = 0, limit: int = 100) -> List[Measurement]:
        with self._session() as session:
            q = self._filtered(session.query(Measurement), device_id, start, end)
            return (
                q.order_by(Measurement.timestamp.desc(), Measurement.id.desc())
                .offset(skip)
                .limit(limit)
                .all()
            )

    def count(self, device_id: Optional[str] = None, start: Optional[datetime] = None,
              end: Optional[datetime] = None) -> int:
        with self._session() as session:
            return self._filtered(session.query(Measurement), device_id, start, end).count()

    def sum_energy(self, since: datetime, until: datetime, device_id: Optional[str] = None) -> float:
        """Sum of booked energy for rows recorded within [since, until]."""
        with self._session() as session:
            q = session.query(func.coalesce(func.sum(Measurement.energy), 0.0)).filter(
                Measurement.created_at >= since,
                Measurement.created_at <= until
            )
            if device_id:
                q = q.filter(Measurement.device_id == device_id)
            total = q.scalar()
        return float(total or 0.0)
