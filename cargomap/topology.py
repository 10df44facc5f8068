# cargomap/topology.py
import logging
from typing import Tuple

from cargomap.config import CargoConfig, ConfigError
from cargomap.models import Connection, Node, Topology, connection_key


def split_host_port(address: str) -> Tuple[str, str]:
    """Split "host:port" or "[v6-host]:port" into its host and port parts.

    Raises ValueError when the address has no port, no host, or an unbracketed
    IPv6 literal.
    """
    if address.startswith("["):
        end = address.find("]")
        if end < 0:
            raise ValueError(f"missing ']' in address {address!r}")
        host, rest = address[1:end], address[end + 1:]
        if not rest.startswith(":"):
            raise ValueError(f"missing port in address {address!r}")
        port = rest[1:]
    else:
        host, sep, port = address.rpartition(":")
        if not sep:
            raise ValueError(f"missing port in address {address!r}")
        if ":" in host:
            raise ValueError(f"too many colons in address {address!r}")

    if not host or not port:
        raise ValueError(f"missing host or port in address {address!r}")
    return host, port


def build_topology(config: CargoConfig) -> Topology:
    topology = Topology()

    for tier_name, ship in config.ships.items():
        topology.nodes[tier_name] = Node(name=tier_name)
        logging.info(f"created tier {tier_name} ({ship.replicas} replicas)")

        for address in ship.clients:
            try:
                host, _ = split_host_port(address)
            except ValueError as e:
                raise ConfigError(f"{address} is not a valid remote host for tier {tier_name}") from e

            key = connection_key(tier_name, host)
            if key in topology.connections:
                continue
            logging.info(f"creating connection {key}")
            topology.connections[key] = Connection(source=tier_name, target=host)

    return topology
