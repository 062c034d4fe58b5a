import pytest
from web3.exceptions import BadFunctionCallOutput

from hypeflow.config import Settings
from hypeflow.exec import pipeline as pl
from hypeflow.exec.errors import ErrorKind, SwapResult
from hypeflow.exec.sim import FixedPriceOracle, SimulatedSwapper, SimulatedWallet
from hypeflow.onchain.ledger import TradeLedger
from hypeflow.types import Action, InvestmentState


class RecordingSwapper:
    def __init__(self, result=None, exc=None, log=None):
        self.result = result or SwapResult.success("0xabc")
        self.exc = exc
        self.calls = []
        self.log = log

    def submit_swap(self, from_asset, to_asset, amount, slippage_bps):
        self.calls.append((from_asset, to_asset, amount, slippage_bps))
        if self.log is not None:
            self.log.append("swap")
        if self.exc:
            raise self.exc
        return self.result


class BrokenWallet:
    def get_holdings(self):
        raise ConnectionError("rpc down")


class FailingSentimentLedger(TradeLedger):
    def record_sentiment(self, signed_score, confidence, sample_count=0):
        raise RuntimeError("ledger offline")


class FakeYield:
    def __init__(self):
        self.calls = []

    def deposit(self, amount):
        self.calls.append(("deposit", amount))
        return SwapResult.success("yield-tx")

    def withdraw(self, amount):
        self.calls.append(("withdraw", amount))
        return SwapResult.success("yield-tx")


def make_pipeline(base=10.0, quote=1000.0, price=20.0, swapper=None, ledger=None, **kw):
    return pl.ExecutionPipeline(
        SimulatedWallet(base, quote),
        FixedPriceOracle(price),
        swapper or RecordingSwapper(),
        ledger if ledger is not None else TradeLedger(),
        **kw,
    )


def invested_ledger():
    ledger = TradeLedger()
    ledger.record_trade(Action.BUY, 1, 0.9, "0x1")
    return ledger


def test_buy_rejected_when_quote_balance_short():
    p = make_pipeline(quote=10.0, price=20.0)
    out = p.run(Action.BUY, 1, 0.8, InvestmentState())
    assert not out.ok
    assert out.kind == ErrorKind.INSUFFICIENT_FUNDS
    assert p.swapper.calls == []
    assert out.state.invested is False
    assert len(p.ledger.sentiments()) == 1


def test_buy_success_swaps_quote_and_flips_state():
    p = make_pipeline(quote=1000.0, price=20.0)
    out = p.run(Action.BUY, 2, 0.8, InvestmentState())
    assert out.ok
    assert p.swapper.calls == [("USDC", "APT", 40.0, 50)]
    assert out.state.invested is True
    assert out.tx_ref == "0xabc"
    assert out.trade is not None and out.trade.action == Action.BUY
    assert p.ledger.is_invested()


def test_sell_rejected_when_base_balance_short():
    p = make_pipeline(base=1.0)
    out = p.run(Action.SELL, 5, 0.8, InvestmentState())
    assert not out.ok and out.kind == ErrorKind.INSUFFICIENT_FUNDS
    assert p.swapper.calls == []


def test_sell_success_swaps_base():
    p = make_pipeline(base=10.0)
    out = p.run(Action.SELL, 5, 0.8, InvestmentState())
    assert out.ok
    assert p.swapper.calls == [("APT", "USDC", 5, 50)]
    assert out.state.invested is False
    assert [t.action for t in p.ledger.trades()] == [Action.SELL]
    assert p.ledger.trades()[0].tx_ref == "0xabc"
    assert p.ledger.is_invested() is False


def test_hold_skips_balances_and_swap():
    p = pl.ExecutionPipeline(BrokenWallet(), FixedPriceOracle(1), RecordingSwapper(), TradeLedger())
    out = p.run(Action.HOLD, 0, 0.5, InvestmentState(invested=True))
    assert out.ok
    assert out.state.invested is True
    assert p.swapper.calls == []
    assert len(p.ledger.sentiments()) == 1


def test_sentiment_stored_as_signed_confidence():
    p = make_pipeline()
    p.run(Action.HOLD, 0, 0.75, InvestmentState(), sample_count=12)
    rec = p.ledger.sentiments()[0]
    assert rec.sentiment_score == 150
    assert rec.confidence == 75
    assert rec.sample_count == 12


def test_sentiment_failure_does_not_block_trade():
    p = make_pipeline(ledger=FailingSentimentLedger())
    out = p.run(Action.BUY, 1, 0.8, InvestmentState())
    assert out.ok
    assert out.sentiment_status == "error-general"
    assert len(p.swapper.calls) == 1
    assert out.state.invested is True


def test_unavailable_holdings_fail_cycle():
    p = pl.ExecutionPipeline(BrokenWallet(), FixedPriceOracle(1), RecordingSwapper(), TradeLedger())
    out = p.run(Action.BUY, 1, 0.8, InvestmentState())
    assert not out.ok
    assert out.kind == ErrorKind.UNAVAILABLE
    assert p.swapper.calls == []


def test_swap_exception_is_classified_not_raised():
    swapper = RecordingSwapper(exc=BadFunctionCallOutput("no code"))
    p = make_pipeline(swapper=swapper)
    out = p.run(Action.BUY, 1, 0.8, InvestmentState())
    assert not out.ok
    assert out.kind == ErrorKind.NOT_FOUND
    assert out.state.invested is False
    assert p.ledger.trades() == []


def test_swap_failure_result_keeps_state():
    swapper = RecordingSwapper(result=SwapResult.failure(ErrorKind.SERIALIZATION, "bad args"))
    p = make_pipeline(swapper=swapper)
    out = p.run(Action.BUY, 1, 0.8, InvestmentState())
    assert not out.ok and out.kind == ErrorKind.SERIALIZATION
    assert out.state.invested is False


def test_deposit_without_yield_protocol_is_placeholder_success():
    p = make_pipeline()
    out = p.run(Action.DEPOSIT, 1, 0.8, InvestmentState(invested=True))
    assert out.ok
    assert out.state.invested is True
    assert p.swapper.calls == []
    assert p.ledger.trades() == []


def test_withdraw_still_checks_balance_without_yield_protocol():
    p = make_pipeline(base=0.5, ledger=invested_ledger())
    out = p.run(Action.WITHDRAW, 2, 0.8, InvestmentState(invested=True))
    assert not out.ok and out.kind == ErrorKind.INSUFFICIENT_FUNDS


def test_withdraw_with_yield_protocol_flips_state():
    ledger = invested_ledger()
    yp = FakeYield()
    p = make_pipeline(ledger=ledger, yield_protocol=yp)
    out = p.run(Action.WITHDRAW, 2, 0.8, InvestmentState(invested=True))
    assert out.ok
    assert yp.calls == [("withdraw", 2)]
    assert out.state.invested is False
    assert not ledger.is_invested()


def test_buy_while_invested_is_refused_before_swap():
    ledger = invested_ledger()
    p = make_pipeline(ledger=ledger)
    out = p.run(Action.BUY, 2, 0.8, InvestmentState(invested=True))
    assert not out.ok
    assert out.kind == ErrorKind.REJECTED
    assert p.swapper.calls == []
    assert out.state.invested is True
    assert len(ledger.trades()) == 1
    assert len(ledger.sentiments()) == 1


def test_second_simulated_buy_does_not_spend_twice():
    wallet = SimulatedWallet(10.0, 1000.0)
    oracle = FixedPriceOracle(20.0)
    p = pl.ExecutionPipeline(wallet, oracle, SimulatedSwapper(wallet, oracle), TradeLedger())
    assert p.execute(Action.BUY, 2, 0.8) is True
    quote_after_first = wallet.get_holdings().quote_balance
    assert p.execute(Action.BUY, 2, 0.8) is False
    assert wallet.get_holdings().quote_balance == quote_after_first
    assert len(p.swapper.calls) == 1
    assert len(p.ledger.trades()) == 1


def test_ledger_state_wins_over_stale_cycle_state():
    p = make_pipeline(ledger=invested_ledger())
    out = p.run(Action.BUY, 1, 0.8, InvestmentState(invested=False))
    assert not out.ok and out.kind == ErrorKind.REJECTED
    assert p.swapper.calls == []


def test_withdraw_while_not_invested_is_refused():
    yp = FakeYield()
    p = make_pipeline(yield_protocol=yp)
    out = p.run(Action.WITHDRAW, 1, 0.8, InvestmentState())
    assert not out.ok and out.kind == ErrorKind.REJECTED
    assert yp.calls == []


def test_deposit_with_yield_protocol_records_trade():
    ledger = invested_ledger()
    yp = FakeYield()
    p = make_pipeline(ledger=ledger, yield_protocol=yp)
    out = p.run(Action.DEPOSIT, 3, 0.7, InvestmentState(invested=True))
    assert out.ok
    assert yp.calls == [("deposit", 3)]
    assert out.trade is not None and out.trade.action == Action.DEPOSIT
    assert out.trade.tx_ref == "yield-tx"
    assert [t.action for t in ledger.trades()] == [Action.BUY, Action.DEPOSIT]
    assert out.state.invested is True and ledger.is_invested()


def test_execute_tracks_state_across_calls():
    p = make_pipeline()
    assert p.execute(Action.BUY, 1, 0.8) is True
    assert p.state.invested is True
    assert p.execute(Action.WITHDRAW, 100, 0.8) is False
    assert p.state.invested is True


class EventLedger(TradeLedger):
    def __init__(self, log):
        super().__init__()
        self.log = log

    def record_sentiment(self, *a, **k):
        self.log.append("ledger")
        return super().record_sentiment(*a, **k)


class EventWallet(SimulatedWallet):
    def __init__(self, log, *a):
        super().__init__(*a)
        self.log = log

    def get_holdings(self):
        self.log.append("balance")
        return super().get_holdings()


@pytest.mark.parametrize("action", [Action.BUY, Action.SELL, Action.HOLD])
def test_simulated_and_live_paths_branch_identically(action):
    results = []
    for simulated in (True, False):
        log = []
        wallet = EventWallet(log, 10.0, 1000.0)
        oracle = FixedPriceOracle(20.0)
        if simulated:
            swapper = SimulatedSwapper(wallet, oracle)
        else:
            swapper = RecordingSwapper(log=[])
        p = pl.ExecutionPipeline(wallet, oracle, swapper, EventLedger(log))
        out = p.run(action, 2, 0.8, InvestmentState())
        results.append((log, out.ok, out.state.invested))
    assert results[0] == results[1]


def test_build_pipeline_mock_uses_simulated_collaborators(tmp_path):
    cfg = Settings(mock_swaps=True, data_dir=str(tmp_path))
    p = pl.build_pipeline(cfg)
    assert isinstance(p.swapper, SimulatedSwapper)
    assert isinstance(p.ledger, TradeLedger)
    assert p.state.invested is False


def test_build_pipeline_restores_state_from_ledger(tmp_path):
    cfg = Settings(mock_swaps=True, data_dir=str(tmp_path))
    first = pl.build_pipeline(cfg)
    assert first.execute(Action.BUY, 1, 0.9)
    again = pl.build_pipeline(cfg)
    assert again.state.invested is True
