"""
meetcap.chain — deterministic local chain: accounts, journaled storage,
events, block clock and atomic transactions.
"""

from .abi import external, payable, view
from .address import ZERO_ADDRESS, normalize_address
from .events import Event, Receipt
from .local import ContractHandle, LocalChain

__all__ = [
    "LocalChain",
    "ContractHandle",
    "Event",
    "Receipt",
    "ZERO_ADDRESS",
    "normalize_address",
    "external",
    "payable",
    "view",
]
