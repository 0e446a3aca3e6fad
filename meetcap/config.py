"""
meetcap.config — local chain parameters and .env handling.

This module centralizes configuration for the local chain and the deploy
tooling. It has NO third-party deps and is safe to import very early.

Configuration precedence:
  1) Explicit arguments (CLI flags, ChainConfig(...) in tests)
  2) Environment variables (MEETCAP_*), optionally seeded from a .env file
  3) Hardcoded defaults below

Key env vars:
  - MEETCAP_NETWORK            (str)  default: "hardhat"
  - MEETCAP_CHAIN_ID           (int)  default: 1337 (overridden per known network)
  - MEETCAP_GENESIS_TIMESTAMP  (int)  default: 1651231656
  - MEETCAP_BLOCK_TIME         (int)  default: 1 (seconds added per mined block)
  - MEETCAP_ACCOUNTS           (int)  default: 20 funded signers
  - MEETCAP_INITIAL_BALANCE    (int)  default: 10_000 * 10**18 wei per signer
  - MEETCAP_DEPLOYMENTS_DIR    (path) default: ./deployments
  - ENV_FILE                   (path) explicit .env location for load_env_file()

Usage:
    from meetcap.config import load_config
    CFG = load_config()
    chain = LocalChain(CFG)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

from .errors import ConfigError

log = logging.getLogger(__name__)

WEI_PER_ETHER = 10**18

# Named networks; the chain id is implied by the name.
KNOWN_NETWORKS: Dict[str, int] = {
    "hardhat": 1337,
    "localhost": 1337,
    "matic_testnet": 80001,
    "matic_mainnet": 137,
}

DEFAULT_NETWORK = "hardhat"
DEFAULT_GENESIS_TIMESTAMP = 1651231656
DEFAULT_BLOCK_TIME = 1
DEFAULT_ACCOUNTS = 20
DEFAULT_INITIAL_BALANCE = 10_000 * WEI_PER_ETHER


# ----------------------------- helpers ---------------------------------------


def _env_int(name: str, default: int, *, min_v: int, max_v: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        v = int(raw.strip(), 0)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}", key=name) from None
    if v < min_v:
        return min_v
    if v > max_v:
        return max_v
    return v


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


# ----------------------------- config ----------------------------------------


@dataclass(frozen=True)
class ChainConfig:
    network: str = DEFAULT_NETWORK
    chain_id: int = KNOWN_NETWORKS[DEFAULT_NETWORK]
    genesis_timestamp: int = DEFAULT_GENESIS_TIMESTAMP
    block_time: int = DEFAULT_BLOCK_TIME
    accounts: int = DEFAULT_ACCOUNTS
    initial_balance: int = DEFAULT_INITIAL_BALANCE
    deployments_dir: Path = Path("deployments")

    def with_overrides(self, **changes) -> "ChainConfig":
        """Return a copy with the given non-None fields replaced."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    def to_dict(self) -> Dict[str, object]:
        return {
            "network": self.network,
            "chain_id": self.chain_id,
            "genesis_timestamp": self.genesis_timestamp,
            "block_time": self.block_time,
            "accounts": self.accounts,
            "initial_balance": self.initial_balance,
            "deployments_dir": str(self.deployments_dir),
        }


@lru_cache(maxsize=1)
def load_config() -> ChainConfig:
    """
    Build a ChainConfig from MEETCAP_* environment variables.

    Cached; call `reload_config()` after changing the environment.
    """
    network = _env_str("MEETCAP_NETWORK", DEFAULT_NETWORK)
    chain_id = _env_int(
        "MEETCAP_CHAIN_ID",
        KNOWN_NETWORKS.get(network, KNOWN_NETWORKS[DEFAULT_NETWORK]),
        min_v=1,
        max_v=2**63 - 1,
    )
    cfg = ChainConfig(
        network=network,
        chain_id=chain_id,
        genesis_timestamp=_env_int(
            "MEETCAP_GENESIS_TIMESTAMP", DEFAULT_GENESIS_TIMESTAMP, min_v=0, max_v=2**63 - 1
        ),
        block_time=_env_int("MEETCAP_BLOCK_TIME", DEFAULT_BLOCK_TIME, min_v=0, max_v=86_400),
        accounts=_env_int("MEETCAP_ACCOUNTS", DEFAULT_ACCOUNTS, min_v=1, max_v=1_000),
        initial_balance=_env_int(
            "MEETCAP_INITIAL_BALANCE", DEFAULT_INITIAL_BALANCE, min_v=0, max_v=2**256 - 1
        ),
        deployments_dir=Path(_env_str("MEETCAP_DEPLOYMENTS_DIR", "deployments")),
    )
    log.debug("loaded chain config %s", cfg)
    return cfg


def reload_config() -> ChainConfig:
    load_config.cache_clear()
    return load_config()


# ----------------------------- .env ------------------------------------------


def load_env_file(path: Optional[Path] = None, *, override: bool = False) -> List[str]:
    """
    Load the first .env file found in:
      - `path` if given
      - $ENV_FILE if set
      - ./.env

    Supports simple KEY=VALUE lines; ignores comments and `export ` prefixes.
    Existing variables win unless `override` is set. Returns the keys applied.
    """
    candidates: List[Path] = []
    if path is not None:
        candidates.append(Path(path))
    env_file = os.environ.get("ENV_FILE")
    if env_file:
        candidates.append(Path(env_file))
    candidates.append(Path.cwd() / ".env")

    applied: List[str] = []
    for p in candidates:
        if not p.is_file():
            continue
        for line in p.read_text(encoding="utf-8").splitlines():
            s = line.strip()
            if not s or s.startswith("#"):
                continue
            if s.lower().startswith("export "):
                s = s[7:].strip()
            if "=" not in s:
                continue
            k, v = s.split("=", 1)
            k = k.strip()
            v = v.strip().strip("'").strip('"')
            if override or k not in os.environ:
                os.environ[k] = v
                applied.append(k)
        log.debug("loaded %d entries from %s", len(applied), p)
        break
    return applied


__all__ = [
    "ChainConfig",
    "KNOWN_NETWORKS",
    "WEI_PER_ETHER",
    "load_config",
    "reload_config",
    "load_env_file",
]
