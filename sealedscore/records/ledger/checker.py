"""Proof checks performed by the development ledger on every write."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from sealedscore.crypto.proofs import (
    decode_clear_values,
    decryption_proof_payload,
    input_proof_payload,
    verify_payload,
)


@runtime_checkable
class ProofChecker(Protocol):
    """What the ledger needs to accept inputs and publish cleartext."""

    def check_input(self, ciphertext: str, proof: str, owner: str) -> bool:
        """True if the input proof binds ciphertext to this ledger and owner."""
        ...

    def check_decryption(self, handle: str, encoded_clear_values: str, proof: str) -> int | None:
        """Clear value for handle if the proof checks out, else None."""
        ...


class KeypairProofChecker:
    """Accepts proofs signed by the relayer's keypair.

    Fail-closed: any decode or signature failure = reject.
    """

    def __init__(self, relayer_ss58: str, context_address: str):
        self.relayer_ss58 = relayer_ss58
        self.context_address = context_address

    def check_input(self, ciphertext: str, proof: str, owner: str) -> bool:
        payload = input_proof_payload(ciphertext, self.context_address, owner)
        return verify_payload(payload, proof, self.relayer_ss58)

    def check_decryption(self, handle: str, encoded_clear_values: str, proof: str) -> int | None:
        try:
            clear_values = decode_clear_values(encoded_clear_values)
        except ValueError:
            return None
        if handle not in clear_values:
            return None
        payload = decryption_proof_payload(encoded_clear_values, self.context_address)
        if not verify_payload(payload, proof, self.relayer_ss58):
            return None
        return clear_values[handle]


__all__ = ["KeypairProofChecker", "ProofChecker"]
