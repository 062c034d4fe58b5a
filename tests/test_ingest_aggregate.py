from datetime import datetime, timedelta, timezone

import pytest

from hypeflow.ingest import aggregate as agg
from hypeflow.ingest.mock import stream_mock_items


def item(i, sentiment, text="gm #Aptos", **kw):
    return agg.ScoredItem(id=str(i), text=text, sentiment=sentiment, **kw)


def test_average_ignores_unscored_and_empty_items():
    items = [item(1, 0.5), item(2, None), item(3, 0.1), item(4, 0.9, text="")]
    assert agg.average_sentiment(items) == pytest.approx(0.3)
    assert agg.average_sentiment([]) == 0.0


def test_weighted_sentiment_uses_engagement():
    items = [item(1, 1.0, retweets=2, likes=1), item(2, -1.0)]
    # weights 5 and 1
    assert agg.weighted_sentiment(items) == pytest.approx(4 / 6)
    assert agg.weighted_sentiment([item(1, None)]) == 0.0


def test_dedupe_keeps_last_by_id():
    items = agg.dedupe([item(1, 0.1), item(2, 0.2), item(1, 0.9)])
    assert len(items) == 2
    assert {i.sentiment for i in items} == {0.9, 0.2}


def test_observe_counts_unique_valid_items():
    obs = agg.observe([item(1, 0.8), item(1, 0.8), item(2, 0.6), item(3, None)])
    assert obs.sample_count == 2
    assert obs.score == pytest.approx(0.7)
    assert obs.observed_at_age_minutes == 0.0


def test_observe_age_from_newest_item():
    now = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
    items = [
        item(1, 0.5, created_at=now - timedelta(minutes=90)),
        item(2, 0.5, created_at=now - timedelta(minutes=45)),
    ]
    obs = agg.observe(items, now=now.timestamp())
    assert obs.observed_at_age_minutes == pytest.approx(45)


def test_observe_weighted_flag():
    items = [item(1, 1.0, likes=3), item(2, -1.0)]
    assert agg.observe(items, weighted=True).score == pytest.approx(0.5)
    assert agg.observe(items).score == pytest.approx(0.0)


def test_mock_stream_is_bullish_and_fresh():
    items = list(stream_mock_items())
    assert len(items) == 10
    obs = agg.observe(items)
    assert obs.score > 0.4
    assert obs.observed_at_age_minutes < 1
