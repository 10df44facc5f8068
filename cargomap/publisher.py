# cargomap/publisher.py
import asyncio
import logging
import time
from typing import Optional

from cargomap.accumulator import MetricsAccumulator
from cargomap.config import SNAPSHOT_INTERVAL
from cargomap.models import Topology


class SnapshotPublisher:
    def __init__(self, topology: Topology, accumulator: MetricsAccumulator,
                 interval: float = SNAPSHOT_INTERVAL):
        self.topology = topology
        self.accumulator = accumulator
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def publish_once(self) -> int:
        volume = self.accumulator.publish()
        self.topology.max_volume = volume

        now = int(time.time())
        self.topology.updated = now
        for node in self.topology.nodes.values():
            node.updated = now

        logging.info(f"took a snapshot with total volume = {volume}")
        return volume

    async def run(self):
        while True:
            await asyncio.sleep(self.interval)
            self.publish_once()

    def start(self):
        if self.running:
            return
        self._task = asyncio.create_task(self.run())
        logging.info(f"Snapshot publisher started, interval {self.interval}s.")

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logging.info("Snapshot publisher stopped.")
