"""Network address records and their native connection-string forms."""
from typing import Any, List, Optional, Tuple
from urllib.parse import parse_qs, urlsplit

from pydantic import BaseModel, ValidationError, conint

from ...errors import SessionConfigError

DEFAULT_PORTS = {"redis": 6379, "memcached": 11211}


class ServerAddress(BaseModel):
    """One server of a network-addressed backend."""

    host: str
    port: Optional[conint(ge=0, le=65535)] = None
    weight: Optional[int] = None


def stringify_address(address: ServerAddress, tag: str) -> str:
    """
    Render an address in the backend's connection-string syntax.

    memcached uses `host:port[:weight]`, redis uses
    `tcp://host:port[?weight=N]`.
    """
    port = address.port if address.port is not None else DEFAULT_PORTS.get(tag, 11211)
    if tag == "memcached":
        text = f"{address.host}:{port}"
        if address.weight is not None:
            text += f":{address.weight}"
        return text
    text = f"tcp://{address.host}:{port}"
    if address.weight is not None:
        text += f"?weight={address.weight}"
    return text


def _coerce(record: Any) -> ServerAddress:
    if isinstance(record, ServerAddress):
        return record
    try:
        return ServerAddress(**dict(record))
    except (TypeError, ValueError, ValidationError) as e:
        raise SessionConfigError(f"Invalid server address {record!r}: {e}") from e


def native_path(tag: str, path: Any) -> Optional[str]:
    """
    Convert a user path into the native path string of a well-known backend.

    Returns:
        The path string, or None if the path is unusable for the backend
    """
    if tag == "files":
        return path if isinstance(path, str) else None
    if isinstance(path, str):
        return path
    if isinstance(path, (dict, ServerAddress)):
        records = [path]
    elif isinstance(path, (list, tuple)):
        records = list(path)
    else:
        return None
    if not records:
        return None
    return ",".join(stringify_address(_coerce(record), tag) for record in records)


def parse_servers(save_path: str, tag: str) -> List[Tuple[str, int, Optional[int]]]:
    """Parse a native connection string back into (host, port, weight) tuples."""
    servers = []
    default_port = DEFAULT_PORTS.get(tag, 11211)
    for item in (save_path or "").split(","):
        item = item.strip()
        if not item:
            continue
        if "://" in item:
            parts = urlsplit(item)
            weight = parse_qs(parts.query).get("weight", [None])[0]
            servers.append(
                (parts.hostname or "localhost", parts.port or default_port, int(weight) if weight else None)
            )
            continue
        host, _, rest = item.partition(":")
        port, _, weight = rest.partition(":")
        servers.append((host or "localhost", int(port) if port else default_port, int(weight) if weight else None))
    return servers
