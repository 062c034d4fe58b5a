import logging
from typing import Optional

from web3 import Web3
from hypeflow.config import settings
from hypeflow.exec.errors import ErrorKind, classify_error
from hypeflow.onchain import ledger
from hypeflow.onchain.eth import w3, send_tx
from hypeflow.types import Action, TradeRecord

logger = logging.getLogger("hypeflow.sentiment_trader")

ACTION_CODES = {
    Action.BUY: 0,
    Action.SELL: 1,
    Action.DEPOSIT: 2,
    Action.WITHDRAW: 3,
}

SENTIMENT_TRADER_ABI = [
    {
        "inputs": [
            {"name": "sentiment", "type": "uint256"},
            {"name": "confidence", "type": "uint256"},
            {"name": "sampleCount", "type": "uint256"},
        ],
        "name": "recordSentiment",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "action", "type": "uint8"},
            {"name": "amount", "type": "uint256"},
            {"name": "confidence", "type": "uint256"},
            {"name": "txRef", "type": "string"},
        ],
        "name": "recordTrade",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "isInvested",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "nextId",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]

# Trade amounts are stored on-chain with 6 decimals.
AMOUNT_SCALE = 10**6

_STATUS_BY_KIND = {
    ErrorKind.SERIALIZATION: ledger.ERROR_SERIALIZATION,
    ErrorKind.NOT_FOUND: ledger.ERROR_MODULE_NOT_FOUND,
}


class ContractLedger:
    """Ledger backed by the deployed SentimentTrader contract."""

    def __init__(self, address: Optional[str] = None):
        self.address = address if address is not None else settings.sentiment_trader_address

    def _contract(self):
        return w3().eth.contract(
            address=Web3.to_checksum_address(self.address), abi=SENTIMENT_TRADER_ABI
        )

    def is_invested(self) -> bool:
        if not self.address:
            return False
        return bool(self._contract().functions.isInvested().call())

    def record_sentiment(
        self, signed_score: float, confidence: float, sample_count: int = 0
    ) -> str:
        if not self.address:
            logger.warning(
                "[ledger] SENTIMENT_TRADER_ADDRESS not configured, skipping sentiment recording"
            )
            return ledger.SKIPPED_NO_ADDRESS
        try:
            sentiment_int = ledger.sentiment_to_int(signed_score)
            confidence_int = ledger.confidence_to_int(confidence)
            logger.info(
                f"[ledger] recording sentiment={sentiment_int} confidence={confidence_int} "
                f"samples={sample_count} at {self.address}"
            )
            fn = self._contract().functions.recordSentiment(
                sentiment_int, confidence_int, sample_count
            )
        except Exception as e:
            logger.error(f"[ledger] error preparing sentiment record: {e}")
            return ledger.ERROR_GENERAL
        try:
            return send_tx(fn)
        except Exception as e:
            kind = classify_error(e)
            if kind == ErrorKind.NOT_FOUND:
                logger.error(
                    f"[ledger] contract not found at {self.address}: check the address and network"
                )
            else:
                logger.error(f"[ledger] sentiment tx failed ({kind.value}): {e}")
            return _STATUS_BY_KIND.get(kind, ledger.ERROR_TX_SUBMISSION)

    def record_trade(
        self, action: Action, amount: float, confidence: float, tx_ref: str
    ) -> TradeRecord:
        if not self.address:
            raise RuntimeError("SENTIMENT_TRADER_ADDRESS is not configured")
        contract = self._contract()
        ledger.check_transition(action, self.is_invested())
        record_id = int(contract.functions.nextId().call())
        send_tx(
            contract.functions.recordTrade(
                ACTION_CODES[action],
                int(amount * AMOUNT_SCALE),
                ledger.confidence_to_int(confidence),
                tx_ref,
            )
        )
        return TradeRecord(
            id=record_id,
            timestamp=w3().eth.get_block("latest")["timestamp"],
            action=action,
            amount=float(amount),
            confidence=float(confidence),
            tx_ref=tx_ref,
        )
