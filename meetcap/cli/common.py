"""
meetcap.cli.common — state and helpers shared by the CLI command modules.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

import typer

from meetcap.chain.address import AddressError
from meetcap.chain.local import LocalChain
from meetcap.config import KNOWN_NETWORKS, ChainConfig, load_env_file, reload_config
from meetcap.errors import ConfigError, ExecError, Revert

EXIT_CONFIG = 2
EXIT_EXEC = 3


class GlobalContext:
    def __init__(self) -> None:
        self.network: Optional[str] = None
        self.env_file: Optional[Path] = None
        self.json_output: bool = False
        self.verbose: bool = False


_ctx = GlobalContext()


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def chain_config() -> ChainConfig:
    """Config from the environment (after the .env file), then CLI overrides."""
    load_env_file(_ctx.env_file)
    cfg = reload_config()
    if _ctx.network and _ctx.network != cfg.network:
        cfg = cfg.with_overrides(
            network=_ctx.network,
            chain_id=KNOWN_NETWORKS.get(_ctx.network, cfg.chain_id),
        )
    return cfg


def make_chain() -> LocalChain:
    return LocalChain(chain_config())


@contextmanager
def cli_errors() -> Iterator[None]:
    """Map execution/config failures to an error line and a non-zero exit code."""
    try:
        yield
    except ConfigError as e:
        typer.echo(f"Error: {e.message}", err=True)
        raise typer.Exit(EXIT_CONFIG)
    except AddressError as e:
        typer.echo(f"Error: invalid address: {e}", err=True)
        raise typer.Exit(EXIT_CONFIG)
    except Revert as e:
        typer.echo(f"Error: transaction reverted: {e.reason}", err=True)
        raise typer.Exit(EXIT_EXEC)
    except ExecError as e:
        typer.echo(f"Error: {e.code}: {e.message}", err=True)
        raise typer.Exit(EXIT_EXEC)


def _pretty(obj: Any) -> str:
    return json.dumps(obj, indent=2, sort_keys=True, ensure_ascii=False)


def output(obj: Any, human: Callable[[], str]) -> None:
    """Print `obj` as JSON under --json, else the human rendering."""
    if _ctx.json_output:
        typer.echo(_pretty(obj))
    else:
        typer.echo(human())


def table(rows: list, columns: list) -> str:
    """Fixed-width text table; `columns` are (key, header) pairs."""
    widths = [
        max(len(header), *(len(str(r[key])) for r in rows)) if rows else len(header)
        for key, header in columns
    ]
    lines = ["  ".join(h.rjust(w) for (_, h), w in zip(columns, widths))]
    for r in rows:
        lines.append("  ".join(str(r[k]).rjust(w) for (k, _), w in zip(columns, widths)))
    return "\n".join(lines)


__all__ = [
    "GlobalContext",
    "configure_logging",
    "chain_config",
    "make_chain",
    "cli_errors",
    "output",
    "table",
    "EXIT_CONFIG",
    "EXIT_EXEC",
]
