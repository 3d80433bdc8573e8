"""Client core: record cache, status slot, pipelines, statistics, session."""

from .cache import RecordCache
from .identity import IdentityProvider, SessionIdentity, wallet_identity
from .pipeline import InvalidTransition, Pipeline, PipelineState, SingleFlight
from .session import ScoreSession, failure_message
from .stats import LearningStats, compute_stats
from .status import StatusKind, TransactionStatus, TransactionStatusMachine

__all__ = [
    "IdentityProvider",
    "InvalidTransition",
    "LearningStats",
    "Pipeline",
    "PipelineState",
    "RecordCache",
    "ScoreSession",
    "SessionIdentity",
    "SingleFlight",
    "StatusKind",
    "TransactionStatus",
    "TransactionStatusMachine",
    "compute_stats",
    "failure_message",
    "wallet_identity",
]
