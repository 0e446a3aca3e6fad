"""
meetcap.cli.deploy — deployment subcommands.

Implements:
  - meetcap deploy token               Meetcap token
  - meetcap deploy presale             token + presale (funded with the presale amount)
  - meetcap deploy timelock NAME       token + one funded allocation lock
  - meetcap deploy all                 token, presale and every production lock

Each run deploys onto a fresh local chain and records the results in
``<deployments-dir>/<network>.json`` unless --no-registry is given.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer

from meetcap.chain.local import LocalChain
from meetcap.deploy.allocations import PRODUCTION_ALLOCATIONS, UNIT, get_allocation
from meetcap.deploy.registry import Deployment, write_registry
from meetcap.deploy.runner import (PRESALE_RATE, PRESALE_TOKENS, deploy_all,
                                   deploy_presale, deploy_timelock,
                                   deploy_token)

from .common import cli_errors, make_chain, output

app = typer.Typer(help="Deploy the token, presale and vesting locks")

_out_option = typer.Option(
    None,
    "--out",
    help="Deployments directory (default: MEETCAP_DEPLOYMENTS_DIR or ./deployments)",
    envvar="MEETCAP_DEPLOYMENTS_DIR",
)
_registry_option = typer.Option(True, "--registry/--no-registry", help="Write the deployments registry file")


def _finish(chain: LocalChain, records: List[Deployment], out: Optional[Path], registry: bool) -> None:
    path: Optional[Path] = None
    if registry:
        path = write_registry(out or chain.config.deployments_dir, chain.config.network, records)

    def human() -> str:
        lines = [f"Deploying to the network: {chain.config.network}"]
        lines += [f"{d.name}: {d.address}" for d in records]
        lines.append(f"Deploying contracts with the account: {records[0].deployer}")
        if path is not None:
            lines.append(f"registry: {path}")
        return "\n".join(lines)

    output(
        {
            "network": chain.config.network,
            "chain_id": chain.config.chain_id,
            "deployments": [d.to_dict() for d in records],
            "registry": str(path) if path is not None else None,
        },
        human,
    )


@app.command("token")
def token_cmd(
    out: Optional[Path] = _out_option,
    registry: bool = _registry_option,
) -> None:
    """Deploy the Meetcap token (whole supply to the deployer)."""
    with cli_errors():
        chain = make_chain()
        _finish(chain, [deploy_token(chain)], out, registry)


@app.command("presale")
def presale_cmd(
    rate: int = typer.Option(PRESALE_RATE, "--rate", help="Token base units per wei"),
    fund: int = typer.Option(PRESALE_TOKENS, "--fund", help="Whole MCAP moved into the presale"),
    admin: Optional[str] = typer.Option(None, "--admin", help="Admin receiving funds (default: deployer)"),
    out: Optional[Path] = _out_option,
    registry: bool = _registry_option,
) -> None:
    """Deploy the token and a funded presale."""
    with cli_errors():
        chain = make_chain()
        token = deploy_token(chain)
        presale = deploy_presale(chain, token.address, rate=rate, admin=admin, fund=fund * UNIT)
        _finish(chain, [token, presale], out, registry)


@app.command("timelock")
def timelock_cmd(
    allocation: str = typer.Argument(..., help="Allocation name (see `meetcap schedule --help`)"),
    beneficiary: Optional[str] = typer.Option(None, "--beneficiary", help="Override the beneficiary address"),
    start: Optional[int] = typer.Option(None, "--start", help="Start timestamp (default: latest block)"),
    fund: bool = typer.Option(True, "--fund/--no-fund", help="Transfer the allocation into the lock"),
    out: Optional[Path] = _out_option,
    registry: bool = _registry_option,
) -> None:
    """Deploy the token and one allocation lock."""
    with cli_errors():
        alloc = get_allocation(allocation)
        chain = make_chain()
        token = deploy_token(chain)
        lock = deploy_timelock(chain, token.address, alloc, beneficiary=beneficiary, start=start, fund=fund)
        _finish(chain, [token, lock], out, registry)


@app.command("all")
def all_cmd(
    presale: bool = typer.Option(True, "--presale/--no-presale", help="Also deploy the presale"),
    start: Optional[int] = typer.Option(None, "--start", help="Start timestamp for every lock"),
    out: Optional[Path] = _out_option,
    registry: bool = _registry_option,
) -> None:
    """Deploy the token, the presale and every production allocation lock."""
    with cli_errors():
        chain = make_chain()
        records = deploy_all(chain, allocations=PRODUCTION_ALLOCATIONS, with_presale=presale, start=start)
        _finish(chain, records, out, registry)
