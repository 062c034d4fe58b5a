import logging
import time

from hypeflow.exec.errors import ErrorKind, SwapResult
from hypeflow.types import HoldingsSnapshot

logger = logging.getLogger("hypeflow.sim")


def mock_tx_ref(prefix: str = "mock-tx") -> str:
    return f"{prefix}-{int(time.time() * 1000)}"


class SimulatedWallet:
    """Paper balances; nothing is read from the chain."""

    def __init__(self, base_balance: float, quote_balance: float):
        self.base_balance = float(base_balance)
        self.quote_balance = float(quote_balance)

    def get_holdings(self) -> HoldingsSnapshot:
        return HoldingsSnapshot(
            base_balance=self.base_balance, quote_balance=self.quote_balance
        )


class FixedPriceOracle:
    def __init__(self, price: float):
        self.price = float(price)

    def get_reference_price(self) -> float:
        return self.price


class SimulatedSwapper:
    """Fills every swap at the oracle price and moves paper balances."""

    def __init__(
        self,
        wallet: SimulatedWallet,
        oracle: FixedPriceOracle,
        base_asset: str = "APT",
        quote_asset: str = "USDC",
    ):
        self.wallet = wallet
        self.oracle = oracle
        self.base_asset = base_asset
        self.quote_asset = quote_asset
        self.calls: list[tuple] = []

    def submit_swap(
        self, from_asset: str, to_asset: str, amount: float, slippage_bps: int
    ) -> SwapResult:
        self.calls.append((from_asset, to_asset, amount, slippage_bps))
        if from_asset == to_asset:
            return SwapResult.failure(ErrorKind.SERIALIZATION, "Cannot swap the same token")
        if amount <= 0:
            return SwapResult.failure(
                ErrorKind.SERIALIZATION,
                f"Invalid amount: {amount}. Amount must be greater than 0.",
            )
        price = self.oracle.get_reference_price()
        if from_asset == self.quote_asset:
            self.wallet.quote_balance -= amount
            self.wallet.base_balance += amount / price
        else:
            self.wallet.base_balance -= amount
            self.wallet.quote_balance += amount * price
        logger.info(f"[sim] MOCK swap {amount} {from_asset} -> {to_asset}")
        return SwapResult.success(mock_tx_ref())
