# cargomap/main.py
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from fastapi.staticfiles import StaticFiles

from cargomap.accumulator import MetricsAccumulator, UnknownConnectionError
from cargomap.config import HOST, PORT, SNAPSHOT_INTERVAL, STATIC_DIR, load_config
from cargomap.models import Topology
from cargomap.publisher import SnapshotPublisher
from cargomap.topology import build_topology

logging.basicConfig(level=logging.INFO,
                    format='%(asctime)s - %(levelname)s - %(message)s',
                    datefmt='%Y-%m-%d %H:%M:%S')


class TrafficMap:
    def __init__(self, topology: Topology, interval: float = SNAPSHOT_INTERVAL):
        self.topology = topology
        self.accumulator = MetricsAccumulator(topology)
        self.publisher = SnapshotPublisher(topology, self.accumulator, interval)
        logging.info(f"Traffic map ready: {len(topology.nodes)} tiers, "
                     f"{len(topology.connections)} connections.")


traffic_map: Optional[TrafficMap] = None

def get_traffic_map() -> TrafficMap:
    if traffic_map is None:
        raise HTTPException(status_code=503, detail="topology not loaded")
    return traffic_map

@asynccontextmanager
async def lifespan(app: FastAPI):
    # a ConfigError here aborts startup before anything is served
    global traffic_map
    traffic_map = TrafficMap(build_topology(load_config()))
    traffic_map.publisher.start()
    try:
        yield
    finally:
        await traffic_map.publisher.stop()

# --- FastAPI App Setup ---
app = FastAPI(title="Cargo Traffic Map", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

def _ingest(record, connection_id: str) -> Response:
    connection_id = connection_id.strip()
    try:
        record(connection_id)
    except UnknownConnectionError:
        logging.warning(f"did not find connection: {connection_id}")
        raise HTTPException(status_code=406, detail=f"unknown connection: {connection_id}")
    return Response(status_code=200)

@app.api_route("/log/complete/{connection_id:path}", methods=["GET", "POST"])
async def log_completed_connection(connection_id: str, traffic: TrafficMap = Depends(get_traffic_map)):
    return _ingest(traffic.accumulator.record_success, connection_id)

@app.api_route("/log/failed/{connection_id:path}", methods=["GET", "POST"])
async def log_failed_connection(connection_id: str, traffic: TrafficMap = Depends(get_traffic_map)):
    return _ingest(traffic.accumulator.record_failure, connection_id)

@app.get("/get")
async def get_topology(traffic: TrafficMap = Depends(get_traffic_map)):
    try:
        body = traffic.topology.model_dump_json(by_alias=True)
    except (ValueError, TypeError):
        logging.exception("Failed to serialize topology")
        return PlainTextResponse("500 - failed to convert topology data into JSON", status_code=500)
    return Response(
        content=body,
        media_type="application/json",
        headers={"Access-Control-Allow-Origin": "*"},
    )

def mount_static(app: FastAPI, directory: str) -> bool:
    # mounted last so the API routes above keep precedence over "/"
    if not os.path.isdir(directory):
        logging.warning(f"Static directory {directory} not found, front-end disabled.")
        return False
    app.mount("/", StaticFiles(directory=directory, html=True), name="static")
    return True

mount_static(app, STATIC_DIR)

def run():
    uvicorn.run(app, host=HOST, port=PORT)

if __name__ == "__main__":
    run()
