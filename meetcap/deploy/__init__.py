"""
meetcap.deploy — allocation presets, deployment runner and deployments registry.
"""

from .allocations import ALLOCATIONS, Allocation, get_allocation, resolve_beneficiary
from .registry import Deployment, read_registry, write_registry
from .runner import deploy_all, deploy_presale, deploy_timelock, deploy_token

__all__ = [
    "ALLOCATIONS",
    "Allocation",
    "Deployment",
    "get_allocation",
    "resolve_beneficiary",
    "read_registry",
    "write_registry",
    "deploy_token",
    "deploy_presale",
    "deploy_timelock",
    "deploy_all",
]
