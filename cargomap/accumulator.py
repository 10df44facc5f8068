# cargomap/accumulator.py
import threading

from cargomap.models import Connection, Metrics, Topology


class UnknownConnectionError(KeyError):
    def __init__(self, connection_id: str):
        super().__init__(connection_id)
        self.connection_id = connection_id


class MetricsAccumulator:
    """Owns the live/published counter pair of every connection in a topology.

    Increments land on the live generation; publish() moves live into published
    and starts a fresh live generation. One lock guards both, held for a single
    increment or a single connection's swap, never for a whole publish pass.
    """

    def __init__(self, topology: Topology):
        self.topology = topology
        self._lock = threading.Lock()

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self.topology.connections

    def _lookup(self, connection_id: str) -> Connection:
        connection = self.topology.connections.get(connection_id)
        if connection is None:
            raise UnknownConnectionError(connection_id)
        return connection

    def record_success(self, connection_id: str):
        connection = self._lookup(connection_id)
        with self._lock:
            connection.live_metrics.normal += 1

    def record_failure(self, connection_id: str):
        connection = self._lookup(connection_id)
        with self._lock:
            connection.live_metrics.danger += 1

    def publish(self) -> int:
        volume = 0
        for connection in list(self.topology.connections.values()):
            with self._lock:
                connection.metrics = connection.live_metrics
                connection.live_metrics = Metrics()
            volume += connection.metrics.total()
        return volume
