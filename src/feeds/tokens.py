"""
Pool and token metadata resolution.

Reads token0/token1 from a pool and symbol/decimals from each ERC20 once at
startup. The results are immutable for the rest of the session.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional

from eth_utils import to_checksum_address
from web3 import Web3

from src.pricing.types import Asset, ReservesSnapshot, Source

logger = logging.getLogger(__name__)

POOL_TOKENS_ABI = [
    {"inputs": [], "name": "token0", "outputs": [{"name": "", "type": "address"}],
     "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "token1", "outputs": [{"name": "", "type": "address"}],
     "stateMutability": "view", "type": "function"},
]

V2_PAIR_ABI = POOL_TOKENS_ABI + [
    {"inputs": [], "name": "getReserves",
     "outputs": [{"name": "reserve0", "type": "uint112"},
                 {"name": "reserve1", "type": "uint112"},
                 {"name": "blockTimestampLast", "type": "uint32"}],
     "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "totalSupply", "outputs": [{"name": "", "type": "uint256"}],
     "stateMutability": "view", "type": "function"},
]

V3_POOL_ABI = POOL_TOKENS_ABI + [
    {"inputs": [], "name": "fee", "outputs": [{"name": "", "type": "uint24"}],
     "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "liquidity", "outputs": [{"name": "", "type": "uint128"}],
     "stateMutability": "view", "type": "function"},
]

ERC20_METADATA_ABI = [
    {"inputs": [], "name": "symbol", "outputs": [{"name": "", "type": "string"}],
     "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "decimals", "outputs": [{"name": "", "type": "uint8"}],
     "stateMutability": "view", "type": "function"},
]

# Some early tokens (e.g. MKR) return symbol as bytes32
ERC20_BYTES32_SYMBOL_ABI = [
    {"inputs": [], "name": "symbol", "outputs": [{"name": "", "type": "bytes32"}],
     "stateMutability": "view", "type": "function"},
]


@dataclass
class PoolInfo:
    """
    Pool information shown when monitoring starts.

    Attributes:
        pool_address: Pool contract address
        source: Pool mechanism
        token0: First asset of the pair
        token1: Second asset of the pair
        reserves: Current reserves (V2 only)
        total_supply: LP token supply (V2 only)
        fee: Fee tier in hundredths of a bip (V3 only)
        liquidity: In-range liquidity (V3 only)
    """

    pool_address: str
    source: Source
    token0: Asset
    token1: Asset
    reserves: Optional[ReservesSnapshot] = None
    total_supply: Optional[int] = None
    fee: Optional[int] = None
    liquidity: Optional[int] = None

    @property
    def fee_pct(self) -> Optional[Decimal]:
        return Decimal(self.fee) / Decimal(10_000) if self.fee is not None else None


class TokenResolver:
    """Resolves and caches ERC20 symbol/decimals."""

    def __init__(self, web3: Web3):
        self.web3 = web3
        self._cache: Dict[str, Asset] = {}

    def resolve(self, token_address: str) -> Asset:
        address = to_checksum_address(token_address)
        if address not in self._cache:
            contract = self.web3.eth.contract(address=address, abi=ERC20_METADATA_ABI)
            decimals = contract.functions.decimals().call()
            symbol = self._symbol(address, contract)
            self._cache[address] = Asset(address=address, symbol=symbol, decimals=int(decimals))
            logger.debug(f"Resolved {address}: {symbol} ({decimals} decimals)")
        return self._cache[address]

    def _symbol(self, address: str, contract) -> str:
        try:
            return contract.functions.symbol().call()
        except Exception as e:
            logger.debug(f"string symbol() failed for {address}, trying bytes32: {e}")
        fallback = self.web3.eth.contract(address=address, abi=ERC20_BYTES32_SYMBOL_ABI)
        raw = fallback.functions.symbol().call()
        return raw.rstrip(b"\x00").decode("utf-8", errors="replace")


def load_pool_info(web3: Web3, pool_address: str, source: Source, resolver: TokenResolver) -> PoolInfo:
    """
    Read a pool's pair assets and headline state.

    Args:
        web3: Web3 instance
        pool_address: Pool contract address
        source: Which mechanism the pool uses
        resolver: Shared token metadata cache

    Returns:
        PoolInfo for the pool
    """
    address = to_checksum_address(pool_address)
    abi = V2_PAIR_ABI if source is Source.V2 else V3_POOL_ABI
    pool = web3.eth.contract(address=address, abi=abi)

    token0 = resolver.resolve(pool.functions.token0().call())
    token1 = resolver.resolve(pool.functions.token1().call())
    info = PoolInfo(pool_address=address, source=source, token0=token0, token1=token1)

    if source is Source.V2:
        reserve0, reserve1, _ = pool.functions.getReserves().call()
        info.reserves = ReservesSnapshot(reserve0=reserve0, reserve1=reserve1)
        info.total_supply = pool.functions.totalSupply().call()
    else:
        info.fee = pool.functions.fee().call()
        info.liquidity = pool.functions.liquidity().call()

    logger.info(f"Loaded {source.display_name} pool {address}: {token0.symbol}/{token1.symbol}")
    return info
