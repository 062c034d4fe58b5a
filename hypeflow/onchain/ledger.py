"""Trade ledger state machine.

The ledger is the system of record for the agent. It holds one flag
(invested / not invested), a next-id counter and two append-only tables:
sentiment observations and trades. Only trades move the flag:

    NotInvested --BUY/DEPOSIT--> Invested
    Invested --SELL/WITHDRAW--> NotInvested

SELL while NotInvested (selling spare holdings) and DEPOSIT while Invested
(topping up the yield position) are recorded but leave the flag where it is.
BUY while Invested and WITHDRAW while NotInvested are double entries and are
rejected with InvalidTransition. HOLD is never a trade. Sentiment records are
accepted in any state.

TradeLedger mirrors the on-chain contract locally (mock mode and tests) and
persists to a JSON file so that investment state survives restarts.
"""

import json
import logging
import math
import os
import pathlib
import threading
import time
from collections import deque
from typing import Any, Deque, Dict, List, Optional

from hypeflow.types import Action, SentimentRecord, TradeRecord

logger = logging.getLogger("hypeflow.ledger")

SKIPPED_NO_ADDRESS = "skipped-no-address"
ERROR_SERIALIZATION = "error-serialization"
ERROR_MODULE_NOT_FOUND = "error-module-not-found"
ERROR_TX_SUBMISSION = "error-tx-submission"
ERROR_GENERAL = "error-general"

DEFAULT_PAGE = 50
# recent events kept in memory; the log has the full stream
MAX_EVENTS = 100


class InvalidTransition(Exception):
    """Trade rejected because it does not match the current investment state."""

    def __init__(self, action: Action, invested: bool):
        state = "Invested" if invested else "NotInvested"
        super().__init__(f"{action.value} rejected while {state}")
        self.action = action
        self.invested = invested


def is_error_status(status: str) -> bool:
    return status.startswith("error-") or status.startswith("skipped-")


def sentiment_to_int(score: float) -> int:
    """Scale [-1, 1] to [0, 200]; 100 is neutral."""
    return int(math.floor((score + 1) * 100 + 0.5))


def confidence_to_int(confidence: float) -> int:
    return int(math.floor(confidence * 100 + 0.5))


def check_transition(action: Action, invested: bool) -> None:
    if action == Action.HOLD:
        raise InvalidTransition(action, invested)
    if action == Action.BUY and invested:
        raise InvalidTransition(action, invested)
    if action == Action.WITHDRAW and not invested:
        raise InvalidTransition(action, invested)


def next_invested(action: Action, invested: bool) -> bool:
    """Flag after an accepted trade; SELL and DEPOSIT may leave it unchanged."""
    check_transition(action, invested)
    return action.enters


def _page(rows: list, offset: int, limit: int) -> list:
    offset = max(0, offset)
    return rows[offset : offset + max(0, limit)]


class TradeLedger:
    def __init__(self, path: Optional[pathlib.Path] = None, mock: bool = True):
        self.path = path
        self.mock = mock
        self.events: Deque[Dict[str, Any]] = deque(maxlen=MAX_EVENTS)
        self._lock = threading.Lock()
        self._invested = False
        self._next_id = 1
        self._sentiments: List[SentimentRecord] = []
        self._trades: List[TradeRecord] = []
        if path is not None and path.exists():
            self._load()

    @classmethod
    def in_data_dir(cls, data_dir: str, mock: bool = True) -> "TradeLedger":
        d = pathlib.Path(data_dir)
        d.mkdir(parents=True, exist_ok=True)
        return cls(d / "ledger.json", mock=mock)

    # --- persistence ---
    def _load(self) -> None:
        with open(self.path) as f:
            raw = json.load(f)
        self._invested = bool(raw.get("invested", False))
        self._next_id = int(raw.get("next_id", 1))
        self._sentiments = [SentimentRecord(**r) for r in raw.get("sentiments", [])]
        self._trades = [TradeRecord(**r) for r in raw.get("trades", [])]
        logger.info(
            f"[ledger] loaded {self.path} invested={self._invested} "
            f"trades={len(self._trades)} sentiments={len(self._sentiments)}"
        )

    def _save(self) -> None:
        if self.path is None:
            return
        payload = {
            "invested": self._invested,
            "next_id": self._next_id,
            "sentiments": [r.model_dump() for r in self._sentiments],
            "trades": [r.model_dump(mode="json") for r in self._trades],
        }
        tmp = self.path.with_suffix(".tmp")
        with open(tmp, "w") as f:
            json.dump(payload, f)
        os.replace(tmp, self.path)

    def _emit(self, name: str, **data) -> None:
        event = {"event": name, **data}
        self.events.append(event)
        logger.info(f"[ledger] event {event}")

    # --- reads ---
    def is_invested(self) -> bool:
        return self._invested

    @property
    def next_id(self) -> int:
        return self._next_id

    def trades(self, offset: int = 0, limit: int = DEFAULT_PAGE) -> List[TradeRecord]:
        return _page(self._trades, offset, limit)

    def sentiments(
        self, offset: int = 0, limit: int = DEFAULT_PAGE
    ) -> List[SentimentRecord]:
        return _page(self._sentiments, offset, limit)

    def counts(self) -> Dict[str, int]:
        return {"trades": len(self._trades), "sentiments": len(self._sentiments)}

    # --- writes ---
    def record_sentiment(
        self, signed_score: float, confidence: float, sample_count: int = 0
    ) -> str:
        try:
            with self._lock:
                rec = SentimentRecord(
                    id=self._next_id,
                    timestamp=time.time(),
                    sentiment_score=sentiment_to_int(signed_score),
                    confidence=confidence_to_int(confidence),
                    sample_count=sample_count,
                )
                self._sentiments.append(rec)
                self._next_id += 1
                self._save()
            self._emit("SentimentRecorded", id=rec.id, score=rec.sentiment_score)
        except Exception as e:
            logger.error(f"[ledger] sentiment write failed: {e}")
            return ERROR_GENERAL
        if self.mock:
            return f"mock-sentiment-tx-{int(rec.timestamp * 1000)}"
        return f"local-sentiment-{rec.id}"

    def record_trade(
        self, action: Action, amount: float, confidence: float, tx_ref: str
    ) -> TradeRecord:
        with self._lock:
            before = self._invested
            after = next_invested(action, before)
            rec = TradeRecord(
                id=self._next_id,
                timestamp=time.time(),
                action=action,
                amount=float(amount),
                confidence=float(confidence),
                tx_ref=tx_ref,
            )
            self._trades.append(rec)
            self._next_id += 1
            self._invested = after
            self._save()
        self._emit(
            "TradeRecorded",
            id=rec.id,
            action=action.value,
            invested=after,
            transition=before != after,
        )
        return rec
