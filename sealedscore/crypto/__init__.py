"""Orchestration of confidential-compute SDK calls.

Encryption binds a score to one contract and identity; decryption obtains
clear values plus a proof and hands them to a publish step.
"""

from .decryption import DecryptionVerifier
from .encryption import EncryptionClient, clamp_score
from .sdk import ConfidentialComputeSDK, HTTPRelayerSDK

__all__ = [
    "ConfidentialComputeSDK",
    "DecryptionVerifier",
    "EncryptionClient",
    "HTTPRelayerSDK",
    "clamp_score",
]
