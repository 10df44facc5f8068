import asyncio
import threading

import pytest

from cargomap.accumulator import MetricsAccumulator, UnknownConnectionError
from cargomap.config import CargoConfig
from cargomap.publisher import SnapshotPublisher
from cargomap.topology import build_topology

# Fixtures and Setup

@pytest.fixture
def topology():
    config = CargoConfig.model_validate({
        "ships": {
            "api": {"clients": ["db:5432", "cache:6379"]},
            "web": {"clients": ["api:8080"]},
        }
    })
    return build_topology(config)

@pytest.fixture
def accumulator(topology):
    return MetricsAccumulator(topology)

# Unit Tests

def test_t1_success_then_publish(accumulator, topology):
    """Test 1: Satu sukses lalu publish -> normal == 1, generasi live kembali nol."""
    accumulator.record_success("api:db")
    accumulator.publish()

    connection = topology.connections["api:db"]
    assert connection.metrics.normal == 1
    assert connection.live_metrics.total() == 0

def test_t2_unknown_connection_never_mutates(accumulator, topology):
    """Test 2: ID tidak dikenal -> UnknownConnectionError, tidak ada koneksi yang berubah."""
    with pytest.raises(UnknownConnectionError) as excinfo:
        accumulator.record_success("api:nowhere")
    assert excinfo.value.connection_id == "api:nowhere"

    with pytest.raises(KeyError):
        accumulator.record_failure("nowhere:api")

    assert "api:nowhere" not in accumulator
    assert "api:nowhere" not in topology.connections
    assert all(c.live_metrics.total() == 0 for c in topology.connections.values())

def test_t3_publish_twice_yields_zero(accumulator):
    """Test 3: Publish kedua tanpa event baru menghasilkan volume nol."""
    accumulator.record_success("api:db")
    accumulator.record_failure("web:api")

    assert accumulator.publish() == 2
    assert accumulator.publish() == 0

def test_t4_volume_equals_sum_of_published(accumulator, topology):
    """Test 4: Volume total sama dengan jumlah metrik yang dipublish."""
    for _ in range(5):
        accumulator.record_success("api:db")
    for _ in range(2):
        accumulator.record_failure("api:cache")
    accumulator.record_success("web:api")

    volume = accumulator.publish()

    assert volume == 8
    assert volume == sum(c.metrics.total() for c in topology.connections.values())

def test_t5_concurrent_increments_no_loss(accumulator, topology):
    """Test 5: N sukses dan M gagal dari banyak thread -> tepat {N, M, 0}."""
    num_threads = 8
    per_thread = 500

    def worker(i):
        record = accumulator.record_success if i % 2 == 0 else accumulator.record_failure
        for _ in range(per_thread):
            record("api:db")

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(num_threads)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    accumulator.publish()
    metrics = topology.connections["api:db"].metrics
    assert metrics.normal == (num_threads // 2) * per_thread
    assert metrics.danger == (num_threads // 2) * per_thread
    assert metrics.warning == 0

def test_t6_increments_during_publish_are_not_lost(accumulator, topology):
    """Test 6: Event yang masuk selama publish berjalan tidak hilang dan tidak ganda."""
    total_events = 20000
    published = 0
    done = threading.Event()

    def producer():
        for _ in range(total_events):
            accumulator.record_success("api:db")
        done.set()

    t = threading.Thread(target=producer)
    t.start()
    while not done.is_set():
        published += accumulator.publish()
    t.join()
    published += accumulator.publish()

    assert published == total_events
    assert topology.connections["api:db"].live_metrics.total() == 0

def test_t7_publish_once_stamps_topology(accumulator, topology):
    """Test 7: publish_once mengisi maxVolume dan waktu update semua node."""
    publisher = SnapshotPublisher(topology, accumulator, interval=60)
    accumulator.record_success("api:db")
    accumulator.record_failure("api:db")

    assert publisher.publish_once() == 2
    assert topology.max_volume == 2
    assert topology.updated > 0
    assert all(node.updated == topology.updated for node in topology.nodes.values())

@pytest.mark.asyncio
async def test_t8_publisher_loop_start_stop(accumulator, topology):
    """Test 8: Publisher berjalan di background dan bisa dihentikan."""
    publisher = SnapshotPublisher(topology, accumulator, interval=0.05)
    accumulator.record_success("web:api")

    publisher.start()
    publisher.start()
    assert publisher.running

    for _ in range(100):
        if topology.max_volume == 1:
            break
        await asyncio.sleep(0.01)

    await publisher.stop()
    assert not publisher.running
    assert topology.connections["web:api"].metrics.normal == 1
    assert topology.max_volume == 1
