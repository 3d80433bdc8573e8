"""Score session: the surface exposed to the presentation layer.

Two linear pipelines run through here:
- create: clamp -> encrypt -> submit -> (ack) -> refresh
- decrypt: read record -> (verified? done) -> fetch handle -> oracle
  decrypt -> publish verification -> refresh

Decrypts are at-most-one-in-flight per record within one identity
generation. Every operation captures the session generation when it
starts; if the identity changes before it finishes, its result is
discarded instead of applied to the cache. Only in-flight pipelines and
the latest finished one of each kind are kept.
Failures are reduced to a short status message and never raised.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Callable

import bittensor as bt

from sealedscore.core.cache import RecordCache
from sealedscore.core.identity import IdentityProvider
from sealedscore.core.pipeline import Pipeline, SingleFlight
from sealedscore.core.stats import LearningStats, compute_stats
from sealedscore.core.status import TransactionStatus, TransactionStatusMachine
from sealedscore.crypto.decryption import DecryptionVerifier
from sealedscore.crypto.encryption import EncryptionClient, clamp_score
from sealedscore.crypto.sdk import ConfidentialComputeSDK
from sealedscore.records.errors import (
    AlreadyVerifiedError,
    ConnectivityError,
    LedgerError,
    NotFoundError,
    RejectedError,
)
from sealedscore.records.gateway.interface import RecordGateway
from sealedscore.records.models import DEFAULT_CATEGORY, Record, ScoreView

_MAX_MESSAGE = 160


def _default_record_id() -> int:
    return time.time_ns() // 1_000_000


def failure_message(prefix: str, error: Exception) -> str:
    """Short user-facing message for an error. Never includes a traceback."""
    if isinstance(error, RejectedError):
        return "Transaction rejected by user"
    if isinstance(error, ConnectivityError):
        return "Ledger unreachable, please retry"
    if isinstance(error, NotFoundError):
        return "Record not found"
    detail = str(error).splitlines()[0] if str(error) else "Unknown error"
    message = f"{prefix}: {detail}"
    if len(message) > _MAX_MESSAGE:
        message = message[:_MAX_MESSAGE - 3] + "..."
    return message


class ScoreSession:
    """Orchestrates records, crypto and status for one connected identity."""

    def __init__(
        self,
        gateway: RecordGateway,
        sdk: ConfidentialComputeSDK,
        identity_provider: IdentityProvider,
        context_address: str,
        status: TransactionStatusMachine | None = None,
        id_factory: Callable[[], int] | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.gateway = gateway
        self.context_address = context_address
        self.identity_provider = identity_provider
        self.encryption = EncryptionClient(sdk)
        self.verifier = DecryptionVerifier(sdk)
        self.cache = RecordCache(gateway)
        self.status = status or TransactionStatusMachine()

        self._id_factory = id_factory or _default_record_id
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._generation = 0
        self._decrypts: SingleFlight[tuple[int, int], int | None] = SingleFlight()
        self._pipelines: dict[str, Pipeline] = {}
        self._provisional: dict[int, int] = {}

        self._unsubscribe = identity_provider.subscribe(self._on_identity_changed)

    # -- Read access --

    @property
    def identity(self) -> str | None:
        if not self.identity_provider.connected:
            return None
        return self.identity_provider.identity

    @property
    def records(self) -> list[Record]:
        return self.cache.records

    @property
    def owned_records(self) -> list[Record]:
        return self.cache.owned_records(self.identity)

    @property
    def stats(self) -> LearningStats:
        return compute_stats(self.owned_records, self._clock())

    @property
    def transaction_status(self) -> TransactionStatus:
        return self.status.status

    @property
    def refreshing(self) -> bool:
        return self.cache.busy

    def search(self, term: str) -> list[Record]:
        return self.cache.search(term)

    @property
    def pipelines(self) -> dict[str, Pipeline]:
        return dict(self._pipelines)

    def pipeline(self, name: str) -> Pipeline:
        """Pipeline by name ("create:<id>" / "decrypt:<id>"), created idle on first use."""
        if name not in self._pipelines:
            self._pipelines[name] = Pipeline(name)
        return self._pipelines[name]

    def _prune_pipelines(self, kind: str, keep: str) -> None:
        """Forget finished pipelines of kind other than keep."""
        prefix = f"{kind}:"
        finished = [
            n for n, p in self._pipelines.items()
            if n.startswith(prefix) and n != keep and not p.in_flight
        ]
        for name in finished:
            del self._pipelines[name]

    def displayed_score(self, record_id: int) -> ScoreView:
        """Score to show for a record.

        Verified records show their published value. A decrypted value the
        ledger has not yet confirmed is shown marked provisional. Anything
        else is unknown.
        """
        record = self.cache.get(record_id)
        if record is not None and record.is_verified:
            return ScoreView(value=record.verified_value, provisional=False)
        if record_id in self._provisional:
            return ScoreView(value=self._provisional[record_id], provisional=True)
        return ScoreView()

    # -- Identity --

    def _on_identity_changed(self, identity: str | None) -> None:
        self._generation += 1
        self._provisional.clear()
        bt.logging.info({"score_session": {"identity_changed": True, "generation": self._generation}})

    def _stale(self, generation: int, operation: str) -> bool:
        if generation == self._generation:
            return False
        bt.logging.info({"score_session": {"discarded": operation, "started_generation": generation, "generation": self._generation}})
        return True

    def close(self) -> None:
        """Detach from the identity provider."""
        self._unsubscribe()

    # -- Operations --

    async def connect(self) -> bool:
        """Initialize the SDK and load records for the connected identity."""
        if self.identity is None:
            return False
        try:
            await self.encryption.ensure_ready()
        except Exception as e:
            bt.logging.error({"score_session": {"sdk_initialize_error": str(e)}})
            self.status.error("Confidential compute initialization failed")
            return False
        return await self.load_records()

    async def load_records(self) -> bool:
        """Refresh the cache from the ledger. False if nothing was applied."""
        if self.identity is None:
            return False
        generation = self._generation
        try:
            records = await self.cache.fetch()
        except Exception as e:
            bt.logging.warning({"score_session": {"load_records_error": str(e)}})
            self.status.error("Failed to load data")
            return False
        if self._stale(generation, "load_records"):
            return False
        self.cache.replace(records)
        return True

    async def _refresh_after_write(self, generation: int) -> bool:
        try:
            records = await self.cache.fetch()
        except Exception as e:
            bt.logging.warning({"score_session": {"refresh_after_write_error": str(e)}})
            return False
        if self._stale(generation, "refresh"):
            return False
        self.cache.replace(records)
        return True

    async def create_record(self, label: str, score: int) -> int | None:
        """Encrypt and submit a new score. Returns the record id, or None on failure."""
        identity = self.identity
        if identity is None:
            self.status.error("Please connect wallet first")
            return None
        label = (label or "").strip()
        if not label:
            self.status.error("A word or phrase is required")
            return None

        value = clamp_score(score)
        record_id = self._id_factory()
        generation = self._generation
        name = f"create:{record_id}"
        pipeline = self.pipeline(name)
        if pipeline.in_flight:
            bt.logging.warning({"score_session": {"create_collision": record_id}})
            self.status.error(failure_message(
                "Submission failed",
                LedgerError(f"record {record_id} is already being submitted", code="duplicate_key"),
            ))
            return None
        self._prune_pipelines("create", keep=name)
        pipeline.start()

        self.status.pending("Encrypting pronunciation score...")
        try:
            encrypted = await self.encryption.encrypt(self.context_address, identity, value)
            self.status.pending("Waiting for transaction confirmation...")
            receipt = await self.gateway.submit(
                record_id,
                label,
                encrypted.ciphertext,
                encrypted.proof,
                value,
                0,
                DEFAULT_CATEGORY,
            )
        except Exception as e:
            pipeline.fail(str(e))
            bt.logging.warning({"score_session": {"create_failed": type(e).__name__, "error": str(e), "record_id": record_id}})
            if not self._stale(generation, "create_record"):
                self.status.error(failure_message("Submission failed", e))
            return None

        pipeline.finish()
        bt.logging.info({"score_session": {"created": record_id, "tx_hash": receipt.tx_hash}})
        if self._stale(generation, "create_record"):
            return None

        self.status.success("Practice recorded successfully!")
        await self._refresh_after_write(generation)
        return record_id

    async def decrypt_record(self, record_id: int) -> int | None:
        """Decrypt and publish a record's score.

        Returns the verified value, or None if it failed or is not yet
        confirmed on the ledger. A concurrent call for the same record joins
        the one in flight.
        """
        if self.identity is None:
            self.status.error("Please connect wallet first")
            return None
        return await self._decrypts.run((self._generation, record_id), lambda: self._decrypt(record_id))

    def _verified_value(self, record_id: int) -> int | None:
        record = self.cache.get(record_id)
        if record is not None and record.is_verified:
            return record.verified_value
        return None

    async def _decrypt(self, record_id: int) -> int | None:
        generation = self._generation
        name = f"decrypt:{record_id}"
        if self.pipeline(name).in_flight:
            # held by a run started under a previous identity
            self._pipelines[name] = Pipeline(name)
        self._prune_pipelines("decrypt", keep=name)
        pipeline = self.pipeline(name)
        pipeline.start()

        try:
            record = await self.gateway.get_record(record_id)
            if record.is_verified:
                pipeline.finish()
                if not self._stale(generation, "decrypt_record"):
                    self.status.success("Score already verified on-chain")
                return record.verified_value

            handle = await self.gateway.get_encrypted_handle(record_id)
            self.status.pending("Decrypting score...")

            async def _publish(encoded_clear_values: str, proof: str) -> object:
                self.status.pending("Verifying decryption on-chain...")
                return await self.gateway.submit_verification(record_id, encoded_clear_values, proof)

            result = await self.verifier.verify([handle], self.context_address, _publish)
        except AlreadyVerifiedError:
            pipeline.finish()
            bt.logging.info({"score_session": {"already_verified": record_id}})
            if self._stale(generation, "decrypt_record"):
                return None
            await self._refresh_after_write(generation)
            self.status.success("Score is already verified on-chain")
            return self._verified_value(record_id)
        except Exception as e:
            pipeline.fail(str(e))
            bt.logging.warning({"score_session": {"decrypt_failed": type(e).__name__, "error": str(e), "record_id": record_id}})
            if not self._stale(generation, "decrypt_record"):
                self.status.error(failure_message("Decryption failed", e))
            return None

        pipeline.finish()
        if self._stale(generation, "decrypt_record"):
            return None

        provisional = result.clear_values[handle]
        self._provisional[record_id] = provisional
        await self._refresh_after_write(generation)

        verified = self._verified_value(record_id)
        if verified is None:
            self.status.success("Score decrypted, awaiting on-chain confirmation")
            return None

        self._provisional.pop(record_id, None)
        if verified != provisional:
            bt.logging.warning({"score_session": {"record_id": record_id, "verified_differs_from_oracle": True}})
        self.status.success("Score decrypted and verified successfully!")
        return verified

    async def check_availability(self) -> bool:
        """Ask whether the confidential-compute backend is available."""
        try:
            available = await self.gateway.is_available()
        except Exception as e:
            bt.logging.warning({"score_session": {"availability_error": str(e)}})
            self.status.error("Availability check failed")
            return False
        if available:
            self.status.success("Confidential compute system is available!")
        else:
            self.status.error("Confidential compute system is unavailable")
        return available


__all__ = ["ScoreSession", "failure_message"]
