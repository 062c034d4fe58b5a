import logging
from datetime import datetime, timezone
from typing import Generator
from hypeflow.ingest.aggregate import ScoredItem

logger = logging.getLogger("hypeflow.mock")

_SAMPLE = [
    ("1", "Absolutely loving the #Aptos ecosystem! The community is amazing.", 0.9),
    ("2", "The Move language is a game-changer! Developing on #Aptos has never been more exciting.", 0.8),
    ("3", "#Aptos is redefining blockchain performance. Insane transaction speeds and low fees!", 0.9),
    ("4", "Exciting times ahead for #Aptos! The development updates keep getting better.", 0.85),
    ("5", "#Aptos is leading the way in blockchain scalability.", 0.9),
    ("6", "Every update from #Aptos makes me more bullish.", 0.8),
    ("7", "The developer experience on #Aptos is getting better.", 0.75),
    ("8", "More partnerships, more adoption! #Aptos is a serious contender.", 0.8),
    ("9", "Tokenomics aside, #Aptos is one of the most technically advanced chains.", 0.7),
    ("10", "Great dev resources coming out from the #Aptos team.", 0.7),
]


def stream_mock_items() -> Generator[ScoredItem, None, None]:
    """Yield pre-scored bullish posts for simulation runs."""
    logger.info("[mock] starting mock item stream")
    now = datetime.now(timezone.utc)
    for item_id, text, score in _SAMPLE:
        item = ScoredItem(id=item_id, text=text, sentiment=score, created_at=now)
        logger.debug(f"[mock] captured item: {item.model_dump()}")
        yield item
