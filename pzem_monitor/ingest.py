# pzem_monitor/ingest.py
import logging

from .delta import compute_delta
from .models import Measurement
from .notifier import NEW_MEASUREMENT
from .schemas import MeasurementIn, measurement_to_json
from .store import MeasurementStore

logger = logging.getLogger(__name__)


class IngestionService:
    """
    Stores one meter sample with the energy booked since the device's previous
    sample, then pushes it to realtime subscribers.

    There is no per-device lock. The baseline read and the insert run without
    an await in between, so a single worker never interleaves them, but two
    workers writing the same device can both see the same baseline.
    """

    def __init__(self, store: MeasurementStore, notifier=None):
        self.store = store
        self.notifier = notifier

    async def ingest(self, reading: MeasurementIn) -> Measurement:
        previous = self.store.latest(reading.device_id)
        if previous is None:
            baseline = None
        else:
            baseline = previous.last_energy if previous.last_energy is not None else 0.0

        result = compute_delta(baseline, reading.energy)

        saved = self.store.insert(
            device_id=reading.device_id,
            voltage=reading.voltage,
            current=reading.current,
            power=reading.power,
            energy=result.delta,
            last_energy=result.raw_counter,
            frequency=reading.frequency,
            timestamp=reading.timestamp or self.store.clock(),
        )
        logger.info(
            "Stored measurement %s for %s: counter=%s delta=%s",
            saved.id, saved.device_id, result.raw_counter, result.delta
        )

        await self._notify(saved)
        return saved

    async def _notify(self, saved: Measurement):
        if self.notifier is None:
            return
        try:
            await self.notifier.emit(NEW_MEASUREMENT, measurement_to_json(saved))
        except Exception as e:
            logger.warning("Realtime notify failed for measurement %s: %r", saved.id, e)
