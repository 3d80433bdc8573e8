"""Development record ledger.

In-process stand-in for the remote record contract: storage with
contract-style write checks, keypair-based access policy, and an aiohttp
server exposing it over the same routes HTTPRecordGateway talks to.
"""

from .auth import AccessPolicy
from .checker import KeypairProofChecker, ProofChecker
from .store import InMemoryRecordLedger

__all__ = [
    "AccessPolicy",
    "InMemoryRecordLedger",
    "KeypairProofChecker",
    "ProofChecker",
]
