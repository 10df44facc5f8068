# cargomap/models.py
from pydantic import BaseModel, ConfigDict, Field, field_serializer
from typing import Dict, List

class Metrics(BaseModel):
    normal: int = 0
    danger: int = 0
    warning: int = 0

    def total(self) -> int:
        return self.normal + self.danger + self.warning

class Node(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="App tier, one per config group")
    renderer: str = "region"
    max_volume: int = Field(0, alias="maxVolume")
    updated: int = Field(0, description="Epoch seconds of the last snapshot")

class Connection(BaseModel):
    source: str
    target: str
    metrics: Metrics = Field(default_factory=Metrics, description="Previous minute, complete")
    # current minute, still accumulating
    live_metrics: Metrics = Field(default_factory=Metrics, exclude=True)

    @property
    def key(self) -> str:
        return connection_key(self.source, self.target)

class Topology(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = "Bottle application map"
    renderer: str = "region"
    layout: str = "ringCenter"
    max_volume: int = Field(0, alias="maxVolume")
    updated: int = 0
    nodes: Dict[str, Node] = Field(default_factory=dict)
    connections: Dict[str, Connection] = Field(default_factory=dict)

    # the client expects plain arrays, not keyed maps
    @field_serializer("nodes")
    def _flatten_nodes(self, nodes: Dict[str, Node]) -> List[Node]:
        return list(nodes.values())

    @field_serializer("connections")
    def _flatten_connections(self, connections: Dict[str, Connection]) -> List[Connection]:
        return list(connections.values())

def connection_key(source: str, target: str) -> str:
    return f"{source}:{target}"
