"""Trade execution pipeline.

One code path for simulated and live trading; the collaborators passed in
decide which. Steps run in a fixed order and each waits for the previous:

1. record the sentiment observation (best effort, never aborts the trade)
2. HOLD stops here
3. ask the ledger whether the trade is allowed (no double entry)
4. read holdings and reference price
5. pre-flight funds check
6. swap (BUY/SELL) or yield protocol call (DEPOSIT/WITHDRAW)
7. on success, append the trade to the ledger and update investment state

No error escapes ``run``/``execute``; failures come back as a classified
outcome so the scheduler can move on to the next tick.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from hypeflow.config import Settings
from hypeflow.exec.errors import ErrorKind, SwapResult, classify_error
from hypeflow.onchain.ledger import (
    InvalidTransition,
    TradeLedger,
    check_transition,
    is_error_status,
)
from hypeflow.types import Action, InvestmentState, TradeRecord

logger = logging.getLogger("hypeflow.exec")


@dataclass
class ExecutionOutcome:
    ok: bool
    state: InvestmentState
    kind: Optional[ErrorKind] = None
    tx_ref: Optional[str] = None
    sentiment_status: str = ""
    trade: Optional[TradeRecord] = None
    error: str = ""


class ExecutionPipeline:
    def __init__(
        self,
        wallet,
        oracle,
        swapper,
        ledger,
        yield_protocol=None,
        base_asset: str = "APT",
        quote_asset: str = "USDC",
        slippage_bps: int = 50,
        state: Optional[InvestmentState] = None,
    ):
        self.wallet = wallet
        self.oracle = oracle
        self.swapper = swapper
        self.ledger = ledger
        self.yield_protocol = yield_protocol
        self.base_asset = base_asset
        self.quote_asset = quote_asset
        self.slippage_bps = slippage_bps
        self.state = state or InvestmentState()

    def execute(
        self, action: Action, amount: float, confidence: float, sample_count: int = 0
    ) -> bool:
        outcome = self.run(action, amount, confidence, self.state, sample_count)
        self.state = outcome.state
        return outcome.ok

    def run(
        self,
        action: Action,
        amount: float,
        confidence: float,
        state: InvestmentState,
        sample_count: int = 0,
    ) -> ExecutionOutcome:
        logger.info(
            f"[exec] {action.value} amount={amount} confidence={confidence:.2f} "
            f"invested={state.invested}"
        )
        status = self._record_sentiment(confidence, sample_count)

        if action == Action.HOLD:
            logger.info("[exec] HOLD - no transaction needed")
            return ExecutionOutcome(ok=True, state=state, sentiment_status=status)

        try:
            self._check_ledger(action, state)
        except InvalidTransition as e:
            logger.warning(f"[exec] ledger refuses {action.value}, not executing: {e}")
            return self._failed(state, status, ErrorKind.REJECTED, str(e))

        try:
            holdings = self.wallet.get_holdings()
            price = self.oracle.get_reference_price()
        except Exception as e:
            logger.error(f"[exec] collaborator unavailable: {e}")
            return self._failed(state, status, ErrorKind.UNAVAILABLE, str(e))

        logger.info(
            f"[exec] balances {holdings.base_balance:.4f} {self.base_asset}, "
            f"{holdings.quote_balance:.2f} {self.quote_asset}; price={price:.4f}"
        )

        if action.enters:
            required = amount * price
            if holdings.quote_balance < required:
                msg = (
                    f"need {required:.2f} {self.quote_asset}, "
                    f"have {holdings.quote_balance:.2f}"
                )
                logger.warning(f"[exec] insufficient funds for {action.value}: {msg}")
                return self._failed(state, status, ErrorKind.INSUFFICIENT_FUNDS, msg)
        else:
            if holdings.base_balance < amount:
                msg = (
                    f"need {amount} {self.base_asset}, "
                    f"have {holdings.base_balance:.4f}"
                )
                logger.warning(f"[exec] insufficient funds for {action.value}: {msg}")
                return self._failed(state, status, ErrorKind.INSUFFICIENT_FUNDS, msg)

        result = self._dispatch(action, amount, price)
        if result is None:
            logger.info(
                f"[exec] yield protocol not configured; {action.value} of {amount} "
                f"{self.base_asset} passed checks, no external call made"
            )
            return ExecutionOutcome(ok=True, state=state, sentiment_status=status)
        if not result.ok:
            kind = result.kind or ErrorKind.UNKNOWN
            logger.error(f"[exec] {action.value} failed ({kind.value}): {result.error}")
            return self._failed(state, status, kind, result.error)

        trade = self._record_trade(action, amount, confidence, result.tx_ref)
        new_state = InvestmentState(invested=action.enters)
        logger.info(
            f"[exec] {action.value} done tx={result.tx_ref} invested={new_state.invested}"
        )
        return ExecutionOutcome(
            ok=True,
            state=new_state,
            tx_ref=result.tx_ref,
            sentiment_status=status,
            trade=trade,
        )

    def _dispatch(self, action: Action, amount: float, price: float) -> Optional[SwapResult]:
        try:
            if action == Action.BUY:
                return self.swapper.submit_swap(
                    self.quote_asset, self.base_asset, amount * price, self.slippage_bps
                )
            if action == Action.SELL:
                return self.swapper.submit_swap(
                    self.base_asset, self.quote_asset, amount, self.slippage_bps
                )
            if self.yield_protocol is None:
                return None
            if action == Action.DEPOSIT:
                return self.yield_protocol.deposit(amount)
            return self.yield_protocol.withdraw(amount)
        except Exception as e:
            return SwapResult.from_exception(e)

    def _check_ledger(self, action: Action, state: InvestmentState) -> None:
        # the ledger is the system of record; the cycle state is only a fallback
        try:
            invested = bool(self.ledger.is_invested())
        except Exception as e:
            logger.warning(f"[exec] could not read ledger state, using cycle state: {e}")
            invested = state.invested
        check_transition(action, invested)

    def _record_sentiment(self, confidence: float, sample_count: int) -> str:
        signed = confidence * 2 - 1
        try:
            status = self.ledger.record_sentiment(signed, confidence, sample_count)
        except Exception as e:
            logger.error(f"[exec] sentiment recording failed ({classify_error(e).value}): {e}")
            return "error-general"
        if is_error_status(status):
            logger.warning(f"[exec] sentiment not recorded: {status}")
        else:
            logger.info(f"[exec] sentiment recorded: {status}")
        return status

    def _record_trade(
        self, action: Action, amount: float, confidence: float, tx_ref: Any
    ) -> Optional[TradeRecord]:
        try:
            return self.ledger.record_trade(action, amount, confidence, str(tx_ref))
        except InvalidTransition as e:
            # checked before dispatch, so only a concurrent writer gets here
            logger.error(f"[exec] ledger rejected executed trade: {e}")
        except Exception as e:
            logger.error(f"[exec] trade record failed ({classify_error(e).value}): {e}")
        return None

    @staticmethod
    def _failed(
        state: InvestmentState, status: str, kind: ErrorKind, error: str
    ) -> ExecutionOutcome:
        return ExecutionOutcome(
            ok=False, state=state, kind=kind, sentiment_status=status, error=error
        )


def build_pipeline(settings: Settings, ledger=None) -> ExecutionPipeline:
    """Wire simulated or live collaborators according to ``mock_swaps``."""
    if settings.mock_swaps:
        from hypeflow.exec.sim import FixedPriceOracle, SimulatedSwapper, SimulatedWallet

        wallet = SimulatedWallet(settings.mock_base_balance, settings.mock_quote_balance)
        oracle = FixedPriceOracle(settings.mock_price)
        swapper = SimulatedSwapper(
            wallet, oracle, settings.base_asset, settings.quote_asset
        )
        if ledger is None:
            ledger = TradeLedger.in_data_dir(settings.data_dir, mock=True)
    else:
        from hypeflow.exec.live import ChainWallet, HttpPriceOracle, RouterSwapper
        from hypeflow.onchain.sentiment_trader import ContractLedger

        wallet, oracle, swapper = ChainWallet(), HttpPriceOracle(), RouterSwapper()
        if ledger is None:
            ledger = ContractLedger(settings.sentiment_trader_address)

    return ExecutionPipeline(
        wallet,
        oracle,
        swapper,
        ledger,
        base_asset=settings.base_asset,
        quote_asset=settings.quote_asset,
        slippage_bps=settings.slippage_bps,
        state=InvestmentState(invested=_load_invested(ledger)),
    )


def _load_invested(ledger) -> bool:
    try:
        return bool(ledger.is_invested())
    except Exception as e:
        logger.error(f"[exec] could not read investment state from ledger: {e}")
        return False
