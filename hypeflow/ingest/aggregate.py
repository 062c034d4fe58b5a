import math
import time
from datetime import datetime
from typing import Iterable, List, Optional

from pydantic import BaseModel

from hypeflow.types import SentimentObservation

RETWEET_WEIGHT = 2
LIKE_WEIGHT = 1
BASE_WEIGHT = 1  # minimum weight per item


class ScoredItem(BaseModel):
    """A social post already scored by an external sentiment model."""

    id: str
    text: str = ""
    sentiment: Optional[float] = None
    created_at: Optional[datetime] = None
    retweets: int = 0
    likes: int = 0


def _valid(item: ScoredItem) -> bool:
    return (
        bool(item.text)
        and item.sentiment is not None
        and not math.isnan(item.sentiment)
    )


def dedupe(items: Iterable[ScoredItem]) -> List[ScoredItem]:
    by_id = {}
    for item in items:
        by_id[item.id] = item
    return list(by_id.values())


def average_sentiment(items: List[ScoredItem]) -> float:
    scores = [i.sentiment for i in items if _valid(i)]
    if not scores:
        return 0.0
    return sum(scores) / len(scores)


def weighted_sentiment(items: List[ScoredItem]) -> float:
    """Engagement-weighted mean; retweets count double, every item at least once."""
    total = 0.0
    weight_sum = 0
    for i in items:
        if not _valid(i):
            continue
        weight = max(i.retweets * RETWEET_WEIGHT + i.likes * LIKE_WEIGHT, BASE_WEIGHT)
        total += i.sentiment * weight
        weight_sum += weight
    return total / weight_sum if weight_sum > 0 else 0.0


def data_age_minutes(items: List[ScoredItem], now: Optional[float] = None) -> float:
    """Minutes since the newest timestamped item; 0 when nothing is timestamped."""
    stamps = [i.created_at.timestamp() for i in items if i.created_at is not None]
    if not stamps:
        return 0.0
    now = time.time() if now is None else now
    return max(0.0, (now - max(stamps)) / 60.0)


def observe(
    items: Iterable[ScoredItem], now: Optional[float] = None, weighted: bool = False
) -> SentimentObservation:
    unique = dedupe(items)
    valid = [i for i in unique if _valid(i)]
    score = weighted_sentiment(valid) if weighted else average_sentiment(valid)
    return SentimentObservation(
        score=max(-1.0, min(1.0, score)),
        sample_count=len(valid),
        observed_at_age_minutes=data_age_minutes(valid, now),
    )
