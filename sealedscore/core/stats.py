"""Learning statistics over the current identity's records.

Each record contributes its best-known value: the published cleartext if
verified, otherwise the public fallback (public_value1). Provisional
decryptions never enter the statistics.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Sequence

from pydantic import BaseModel

from sealedscore.records.models import Record

RECENT_WINDOW = timedelta(days=7)
NO_BEST_LABEL = "None"


class LearningStats(BaseModel):
    total_count: int = 0
    average_score: int = 0
    improvement_rate: int = 0
    best_label: str = NO_BEST_LABEL
    best_score: int = 0
    recent_count: int = 0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_stats(owned_records: Sequence[Record], now: datetime | None = None) -> LearningStats:
    """Aggregate statistics. Pure given the same records and `now`.

    improvement_rate is the share of records created in the trailing
    7 days, as a rounded percentage. best_label is the label with the
    strictly highest best-known value (first wins ties), "None" if every
    score is 0.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    total = len(owned_records)
    if total == 0:
        return LearningStats()

    values = [r.best_known_value for r in owned_records]
    recent = sum(1 for r in owned_records if now - r.created_at < RECENT_WINDOW)

    best_label = ""
    best_score = 0
    for record, value in zip(owned_records, values):
        if value > best_score:
            best_score = value
            best_label = record.label

    return LearningStats(
        total_count=total,
        average_score=_round_half_up(sum(values) / total),
        improvement_rate=_round_half_up(recent / total * 100),
        best_label=best_label or NO_BEST_LABEL,
        best_score=best_score,
        recent_count=recent,
    )


__all__ = ["LearningStats", "NO_BEST_LABEL", "RECENT_WINDOW", "compute_stats"]
