"""
Triage Value Objects
=====================

Stateless scoring and text helpers for the triage domain.
"""

import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from triage_engine.config import ScoreWeights
from triage_engine.core import as_utc
from triage_engine.triage.domain.entities import Followup, Message, ReviewItem

_SECONDS_PER_DAY = 86400.0
_WHITESPACE = re.compile(r"\s+")


def collapse_whitespace(text: Optional[str]) -> str:
    return _WHITESPACE.sub(" ", text or "").strip()


def shorten(text: Optional[str], max_chars: int, ellipsis: str = "") -> str:
    """Collapse whitespace and cut to `max_chars` (plus `ellipsis` when cut)."""
    text = collapse_whitespace(text)
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + ellipsis


def clamp_days(days: Optional[int], default: int, maximum: int) -> int:
    """Bound a requested window to [1, maximum]; missing or zero means default."""
    if not days:
        return default
    return max(1, min(maximum, int(days)))


@dataclass(frozen=True)
class RankCandidate:
    """A message paired with its follow-up row, if any."""
    message: Message
    followup: Optional[Followup] = None


class PriorityRanker:
    """
    Pure relevance scoring for the review queue.

        score = w_q*[is_question] + w_f*[followup] + w_u*urgency
                + w_r*[not replied] + w_t*exp(-age_days)

    Unset flags count as false and unset urgency as 0.
    """

    def __init__(
        self,
        weights: Optional[ScoreWeights] = None,
        top_k: int = 10,
        hide_snoozed: bool = True,
        snippet_chars: int = 120
    ):
        self.weights = weights or ScoreWeights()
        self.top_k = top_k
        self.hide_snoozed = hide_snoozed
        self.snippet_chars = snippet_chars

    @staticmethod
    def age_days(created_at: datetime, now: datetime) -> float:
        """Age in days, never negative (clock skew puts messages in the future)."""
        delta = (as_utc(now) - as_utc(created_at)).total_seconds() / _SECONDS_PER_DAY
        return max(0.0, delta)

    def score(self, message: Message, now: datetime) -> float:
        w = self.weights
        return (
            w.question * float(bool(message.is_question))
            + w.followup * float(bool(message.followup))
            + w.urgency * float(message.urgency_score or 0.0)
            + w.unreplied * float(not message.replied)
            + w.recency * math.exp(-self.age_days(message.created_at, now))
        )

    def rank(self, candidates: Iterable[RankCandidate], now: datetime) -> List[ReviewItem]:
        """
        Score candidates and return the top K.

        Sorted by score descending, then newest first, then id, so equal
        inputs always produce the same order.
        """
        scored = []
        for candidate in candidates:
            if (
                self.hide_snoozed
                and candidate.followup is not None
                and candidate.followup.is_snoozed(now)
            ):
                continue
            scored.append((self.score(candidate.message, now), candidate))

        scored.sort(
            key=lambda pair: (
                -pair[0],
                -as_utc(pair[1].message.created_at).timestamp(),
                pair[1].message.id,
            )
        )

        return [self._to_item(score, c) for score, c in scored[: self.top_k]]

    def _to_item(self, score: float, candidate: RankCandidate) -> ReviewItem:
        m = candidate.message
        f = candidate.followup
        return ReviewItem(
            id=m.id,
            created_at=as_utc(m.created_at),
            short_text=shorten(m.text, self.snippet_chars),
            is_question=bool(m.is_question),
            followup=bool(m.followup),
            urgency_score=float(m.urgency_score or 0.0),
            replied=m.replied,
            score=round(score, 6),
            followup_status=f.status if f else None,
            due_at=f.due_at if f else None,
        )


def cosine_similarity(a: List[float], b: List[float]) -> float:
    """Cosine of two equal-length vectors; 0.0 when either is all zeros."""
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0
