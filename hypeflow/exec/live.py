import logging

import requests
from hypeflow.config import settings
from hypeflow.exec.errors import CollaboratorUnavailable, ErrorKind, SwapResult
from hypeflow.onchain import eth, uniswap_v2
from hypeflow.types import HoldingsSnapshot

logger = logging.getLogger("hypeflow.live")

PRICE_TIMEOUT_SEC = 10


def fetch_reference_price(asset_id: str | None = None) -> float:
    """Read the reference price in quote units from the configured HTTP oracle."""
    asset_id = asset_id or settings.price_api_id
    if not settings.price_api_url:
        raise CollaboratorUnavailable("PRICE_API_URL is not configured")
    try:
        r = requests.get(
            settings.price_api_url,
            params={"ids": asset_id, "vs_currencies": "usd"},
            timeout=PRICE_TIMEOUT_SEC,
        )
    except requests.exceptions.RequestException as e:
        raise CollaboratorUnavailable(f"price fetch failed: {e}") from e
    if r.status_code != 200:
        raise CollaboratorUnavailable(f"price fetch failed: HTTP {r.status_code} {r.text}")
    data = r.json() or {}
    try:
        price = float(data[asset_id]["usd"])
    except (KeyError, TypeError, ValueError) as e:
        raise CollaboratorUnavailable(f"malformed price response: {data}") from e
    if price <= 0:
        raise CollaboratorUnavailable(f"non-positive price {price}")
    return price


class HttpPriceOracle:
    def get_reference_price(self) -> float:
        return fetch_reference_price()


class ChainWallet:
    """Reads ERC-20 balances of the configured account."""

    def get_holdings(self) -> HoldingsSnapshot:
        if not settings.base_token or not settings.quote_token:
            raise CollaboratorUnavailable("BASE_TOKEN / QUOTE_TOKEN are not configured")
        try:
            owner = eth.account_address()
            base_raw = eth.token(settings.base_token).functions.balanceOf(owner).call()
            quote_raw = eth.token(settings.quote_token).functions.balanceOf(owner).call()
            return HoldingsSnapshot(
                base_balance=eth.token_units(settings.base_token, base_raw),
                quote_balance=eth.token_units(settings.quote_token, quote_raw),
            )
        except CollaboratorUnavailable:
            raise
        except Exception as e:
            raise CollaboratorUnavailable(f"balance fetch failed: {e}") from e


class RouterSwapper:
    """Swaps through the configured Uniswap-V2 style router."""

    def _address(self, asset: str) -> str | None:
        if asset == settings.base_asset:
            return settings.base_token
        if asset == settings.quote_asset:
            return settings.quote_token
        return None

    def submit_swap(
        self, from_asset: str, to_asset: str, amount: float, slippage_bps: int
    ) -> SwapResult:
        if from_asset == to_asset:
            return SwapResult.failure(ErrorKind.SERIALIZATION, "Cannot swap the same token")
        from_token, to_token = self._address(from_asset), self._address(to_asset)
        if not from_token or not to_token:
            return SwapResult.failure(
                ErrorKind.NOT_FOUND, f"no token address for {from_asset}/{to_asset}"
            )
        logger.info(f"[live] swapping {amount} {from_asset} -> {to_asset}")
        try:
            tx = uniswap_v2.swap_exact_tokens(from_token, to_token, amount, slippage_bps)
        except Exception as e:
            return SwapResult.from_exception(e)
        logger.info(f"[live] swap confirmed tx={tx}")
        return SwapResult.success(tx)
