from web3 import Web3
from hypeflow.config import settings

_w3 = None

ERC20_ABI = [
    {
        "inputs": [{"name": "owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "spender", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "name": "approve",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]


def w3() -> Web3:
    global _w3
    if _w3 is None:
        if not settings.eth_http:
            raise RuntimeError("ETH_HTTP is not configured")
        _w3 = Web3(
            Web3.HTTPProvider(
                settings.eth_http,
                request_kwargs={"timeout": settings.request_timeout_sec},
            )
        )
        if not _w3.is_connected():
            raise RuntimeError("Web3 failed to connect")
    return _w3


def account_address() -> str:
    if not settings.private_key:
        raise RuntimeError("PRIVATE_KEY is not configured")
    return w3().eth.account.from_key(settings.private_key).address


def token(address: str):
    return w3().eth.contract(address=Web3.to_checksum_address(address), abi=ERC20_ABI)


def token_units(address: str, raw: int) -> float:
    return raw / 10 ** token(address).functions.decimals().call()


def to_raw(address: str, amount: float) -> int:
    return int(amount * 10 ** token(address).functions.decimals().call())


def send_tx(fn) -> str:
    """Sign and submit a contract call, wait for the receipt, return the tx hash.

    Raises RuntimeError when the transaction is mined but reverted.
    """
    client = w3()
    sender = account_address()
    tx = fn.build_transaction(
        {"from": sender, "nonce": client.eth.get_transaction_count(sender)}
    )
    signed = client.eth.account.sign_transaction(tx, settings.private_key)
    tx_hash = client.eth.send_raw_transaction(signed.raw_transaction)
    receipt = client.eth.wait_for_transaction_receipt(
        tx_hash, timeout=settings.request_timeout_sec * 6
    )
    hex_hash = Web3.to_hex(tx_hash)
    if receipt.get("status") != 1:
        raise RuntimeError(f"transaction {hex_hash} reverted")
    return hex_hash
