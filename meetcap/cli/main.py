"""
meetcap - command-line interface for the Meetcap token sale contracts.

Commands:
  - accounts                List the local chain's funded signers
  - schedule NAME           Show an allocation's vesting schedule
  - simulate NAME           Deploy a lock on a local chain and release it over time
  - deploy token|presale|timelock|all
  - version

Global options:
  --network TEXT           Network name (hardhat, localhost, matic_testnet, matic_mainnet)
  --env-file PATH          .env file with beneficiary addresses / MEETCAP_* settings
  --json                   Output JSON instead of human-readable text
  --verbose / -v           Debug logging to stderr

Examples:
  meetcap accounts
  meetcap schedule community
  meetcap simulate public-sale --days 120 --step-days 10
  meetcap --json deploy all --out ./deployments
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

from meetcap.contracts.schedule import SECONDS_PER_DAY
from meetcap.deploy.allocations import allocation_names, get_allocation
from meetcap.deploy.runner import deploy_timelock, deploy_token
from meetcap.version import __version__, version_metadata

from . import deploy
from .common import _ctx, chain_config, cli_errors, configure_logging, make_chain, output, table

app = typer.Typer(
    name="meetcap",
    help="Meetcap token, presale and vesting timelock on a local deterministic chain",
    no_args_is_help=True,
    add_completion=False,
)


@app.callback()
def main_callback(
    network: Optional[str] = typer.Option(
        None,
        "--network",
        help="Network name (hardhat, localhost, matic_testnet, matic_mainnet)",
        envvar="MEETCAP_NETWORK",
    ),
    env_file: Optional[Path] = typer.Option(
        None,
        "--env-file",
        help="Path to a .env file (default: $ENV_FILE or ./.env)",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output JSON instead of human-readable text",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Increase verbosity",
    ),
) -> None:
    """
    Meetcap CLI: deploy and exercise the token sale contracts.

    Configuration is resolved in this order (highest to lowest priority):
      1. Command-line flags (--network, --out, ...)
      2. Environment variables (MEETCAP_NETWORK, COMMUNITY_ADDRESS, ...)
      3. The .env file (--env-file, $ENV_FILE or ./.env)
      4. Built-in defaults (hardhat network, genesis at 1651231656)
    """
    _ctx.network = network
    _ctx.env_file = env_file
    _ctx.json_output = json_output
    _ctx.verbose = verbose
    configure_logging(verbose)


app.add_typer(deploy.app, name="deploy")


@app.command()
def version() -> None:
    """Show the meetcap version."""
    output(version_metadata(), lambda: f"meetcap {__version__}")


@app.command()
def accounts(
    balances: bool = typer.Option(False, "--balances", help="Also show native balances"),
) -> None:
    """Print the list of local signer accounts."""
    with cli_errors():
        chain = make_chain()
        rows = [
            {"index": i, "address": a, "balance": chain.balance_of(a)}
            for i, a in enumerate(chain.signers)
        ]

    def human() -> str:
        if balances:
            return "\n".join(f"{r['address']}  {r['balance']}" for r in rows)
        return "\n".join(r["address"] for r in rows)

    output(rows, human)


@app.command()
def schedule(
    allocation: str = typer.Argument(..., help=f"One of: {', '.join(allocation_names())}"),
    start: Optional[int] = typer.Option(None, "--start", help="Start timestamp (default: genesis timestamp)"),
) -> None:
    """Show an allocation's phases: unlock dates, percents and cumulative amounts."""
    with cli_errors():
        alloc = get_allocation(allocation)
        start_date = chain_config().genesis_timestamp if start is None else start
        rows = alloc.schedule.rows(start_date, alloc.amount)

    output(
        {**alloc.to_dict(), "start_date": start_date, "phases": rows},
        lambda: f"{alloc.label}: {alloc.amount} base units, {len(rows)} phases from {start_date}\n"
        + table(
            rows,
            [
                ("index", "#"),
                ("duration", "after (s)"),
                ("date", "unlock at"),
                ("percent", "%"),
                ("cumulative_percent", "cum %"),
                ("unlocked", "unlocked"),
            ],
        ),
    )


@app.command()
def simulate(
    allocation: str = typer.Argument(..., help=f"One of: {', '.join(allocation_names())}"),
    days: int = typer.Option(1200, "--days", min=1, help="How long to run"),
    step_days: int = typer.Option(30, "--step-days", min=1, help="Time advanced between release attempts"),
) -> None:
    """Deploy a funded lock on a fresh local chain and release it step by step."""
    with cli_errors():
        alloc = get_allocation(allocation)
        chain = make_chain()
        token = deploy_token(chain)
        lock_rec = deploy_timelock(chain, token.address, alloc)
        lock = chain.at(lock_rec.address)
        caller = chain.signers[0]
        start = lock.call().start_date()

        steps: List[Dict[str, Any]] = []
        elapsed = 0
        while elapsed < days:
            step = min(step_days, days - elapsed)
            chain.increase_time(step * SECONDS_PER_DAY)
            chain.mine()
            elapsed += step
            if not lock.call().releasable():
                continue
            receipt = lock.transact(caller).release()
            ev = receipt.event("Released")
            steps.append(
                {
                    "day": (chain.latest_timestamp() - start) // SECONDS_PER_DAY,
                    "timestamp": receipt.timestamp,
                    "amount": ev["amount"],
                    "released_amount": ev["released_amount"],
                    "phases": f"{ev['from_index']}-{ev['to_index']}",
                }
            )
            if lock.call().next_release_date() is None:
                break

        data = lock.call().lock_data()

    output(
        {
            "allocation": alloc.name,
            "lock": lock.address,
            "beneficiary": data.user,
            "releases": steps,
            "released_amount": data.released_amount,
            "amount": data.amount,
            "next_release_idx": data.next_release_idx,
        },
        lambda: table(
            steps,
            [("day", "day"), ("phases", "phases"), ("amount", "released"), ("released_amount", "total")],
        )
        + f"\nreleased {data.released_amount} of {data.amount}",
    )


def main() -> None:
    """Entry point for the meetcap CLI."""
    app()


if __name__ == "__main__":
    main()
