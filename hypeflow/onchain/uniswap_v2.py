import time

from web3 import Web3
from hypeflow.onchain.eth import w3, token, to_raw, send_tx, account_address
from hypeflow.config import settings

ROUTER_ABI = [
    {
        "inputs": [
            {"internalType": "uint256", "name": "amountIn", "type": "uint256"},
            {"internalType": "address[]", "name": "path", "type": "address[]"},
        ],
        "name": "getAmountsOut",
        "outputs": [
            {"internalType": "uint256[]", "name": "amounts", "type": "uint256[]"}
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "uint256", "name": "amountIn", "type": "uint256"},
            {"internalType": "uint256", "name": "amountOutMin", "type": "uint256"},
            {"internalType": "address[]", "name": "path", "type": "address[]"},
            {"internalType": "address", "name": "to", "type": "address"},
            {"internalType": "uint256", "name": "deadline", "type": "uint256"},
        ],
        "name": "swapExactTokensForTokens",
        "outputs": [
            {"internalType": "uint256[]", "name": "amounts", "type": "uint256[]"}
        ],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]

DEADLINE_SEC = 300


def _router():
    if not settings.router_v2:
        raise RuntimeError("ROUTER_V2 is not configured")
    return w3().eth.contract(
        address=Web3.to_checksum_address(settings.router_v2), abi=ROUTER_ABI
    )


def get_amounts_out(amount_in_raw: int, path: list[str]) -> list[int]:
    router = _router()
    return router.functions.getAmountsOut(
        amount_in_raw, [Web3.to_checksum_address(p) for p in path]
    ).call()


def min_out(expected_out: int, slippage_bps: int) -> int:
    return max(1, expected_out * (10_000 - slippage_bps) // 10_000)


def swap_exact_tokens(
    from_token: str, to_token: str, amount: float, slippage_bps: int
) -> str:
    """Approve the router and swap an exact input amount. Returns the tx hash."""
    if amount <= 0:
        raise ValueError(f"Invalid amount: {amount}. Amount must be greater than 0.")
    amount_in = to_raw(from_token, amount)
    if amount_in <= 0:
        raise ValueError(f"Invalid raw amount calculated: {amount_in}")
    path = [from_token, to_token]
    expected = get_amounts_out(amount_in, path)[-1]
    router = _router()

    send_tx(token(from_token).functions.approve(router.address, amount_in))
    return send_tx(
        router.functions.swapExactTokensForTokens(
            amount_in,
            min_out(expected, slippage_bps),
            [Web3.to_checksum_address(p) for p in path],
            account_address(),
            int(time.time()) + DEADLINE_SEC,
        )
    )
