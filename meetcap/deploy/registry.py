"""
meetcap.deploy.registry — per-network deployments file.

``<deployments_dir>/<network>.json`` maps a deployment name (``Meetcap``,
``MeetcapPresale``, ``CommunityTimeLock`` …) to its record. Files are written
as canonical JSON (sorted keys, no whitespace) with an atomic replace so a
crashed deploy never leaves a truncated registry behind.
"""

from __future__ import annotations

import errno
import json
import logging
import os
import tempfile
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

log = logging.getLogger(__name__)

_JSON_SEPARATORS = (",", ":")


@dataclass
class Deployment:
    name: str
    contract: str
    address: str
    deployer: str
    block: int
    timestamp: int
    args: List[Any] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def canonical_json_str(obj: Any) -> str:
    """UTF-8 safe, no whitespace, sorted keys."""
    return json.dumps(
        obj,
        ensure_ascii=False,
        sort_keys=True,
        separators=_JSON_SEPARATORS,
        allow_nan=False,
    )


def ensure_dir(p: Union[str, "os.PathLike[str]"]) -> Path:
    path = Path(p)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        if e.errno != errno.EEXIST:
            raise
    return path


def atomic_write_text(path: Union[str, "os.PathLike[str]"], text: str) -> Path:
    """Write text atomically: tmp → fsync → rename."""
    target = Path(path)
    ensure_dir(target.parent)
    with tempfile.NamedTemporaryFile(dir=str(target.parent), delete=False) as tf:
        tf.write(text.encode("utf-8"))
        tf.flush()
        os.fsync(tf.fileno())
        tmp_name = tf.name
    os.replace(tmp_name, target)
    return target


def registry_path(deployments_dir: Union[str, Path], network: str) -> Path:
    return Path(deployments_dir) / f"{network}.json"


def read_registry(path: Union[str, Path]) -> Dict[str, Any]:
    p = Path(path)
    if not p.is_file():
        return {}
    return json.loads(p.read_text(encoding="utf-8"))


def write_registry(
    deployments_dir: Union[str, Path],
    network: str,
    deployments: Iterable[Deployment],
) -> Path:
    """Merge `deployments` into the network's registry file; returns its path."""
    path = registry_path(deployments_dir, network)
    current = read_registry(path)
    for d in deployments:
        current[d.name] = d.to_dict()
    atomic_write_text(path, canonical_json_str(current))
    log.info("registry updated: %s (%d entries)", path, len(current))
    return path


__all__ = [
    "Deployment",
    "canonical_json_str",
    "atomic_write_text",
    "ensure_dir",
    "registry_path",
    "read_registry",
    "write_registry",
]
