"""
On-chain readers: pool state, positions, token metadata

All reads for one logical step are sent as one batch and pinned to the
block the caller passes in.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from ...errors import (
    AdapterError,
    ErrorCode,
    InconsistentPoolState,
    PositionNotFound,
    RpcError,
    TickOutOfRange,
)
from ...infra.rpc import EthCall, RpcReader
from ...types import PoolState, Position, PositionFailure, TickInfo, Token
from . import abi
from .math import get_sqrt_ratio_at_tick, get_tick_at_sqrt_ratio

logger = logging.getLogger(__name__)


def verify_tick(pool_address: str, sqrt_price_x96: int, reported_tick: int) -> int:
    """
    Check slot0.tick against the tick derived from sqrtPriceX96

    A swap that ends exactly on a tick boundary moving down leaves the pool
    at sqrtRatio(t + 1) with tick t, so reported == derived - 1 is accepted
    when the price sits exactly on the derived tick's boundary.

    Returns:
        The pool's tick

    Raises:
        InconsistentPoolState: Any other disagreement, or an uninitialized pool
    """
    if sqrt_price_x96 == 0:
        raise InconsistentPoolState(f"Pool {pool_address} is not initialized", pool_address)
    try:
        derived = get_tick_at_sqrt_ratio(sqrt_price_x96)
    except TickOutOfRange:
        raise InconsistentPoolState(
            f"Pool {pool_address} sqrtPriceX96 {sqrt_price_x96} is outside the valid range",
            pool_address,
        )

    if reported_tick == derived:
        return reported_tick
    if reported_tick == derived - 1 and sqrt_price_x96 == get_sqrt_ratio_at_tick(derived):
        return reported_tick
    raise InconsistentPoolState.tick_mismatch(pool_address, reported_tick, derived)


class PoolStateReader:
    """
    Reads slot0, liquidity and fee growth for a pool

    Usage:
        reader = PoolStateReader(rpc)
        state = await reader.load(pool_address, fee=3000, block_number=block)
        state, lower, upper = await reader.load_with_ticks(pool_address, 3000, -600, 600, block)
    """

    def __init__(self, rpc: RpcReader):
        self._rpc = rpc

    async def load(self, pool_address: str, fee: int, block_number: Optional[int] = None) -> PoolState:
        """slot0() + liquidity() in one batch"""
        slot0_data, liquidity_data = await self._rpc.batch_call(
            [EthCall(pool_address, abi.SLOT0), EthCall(pool_address, abi.LIQUIDITY)],
            block_number,
        )
        return self._build_state(pool_address, fee, block_number, slot0_data, liquidity_data)

    async def load_with_ticks(
        self,
        pool_address: str,
        fee: int,
        tick_lower: int,
        tick_upper: int,
        block_number: Optional[int] = None,
    ) -> Tuple[PoolState, TickInfo, TickInfo]:
        """
        Everything fee computation needs, in one round-trip

        slot0, liquidity, both fee growth globals and the TickInfo of both
        range bounds.
        """
        results = await self._rpc.batch_call(
            [
                EthCall(pool_address, abi.SLOT0),
                EthCall(pool_address, abi.LIQUIDITY),
                EthCall(pool_address, abi.FEE_GROWTH_GLOBAL0),
                EthCall(pool_address, abi.FEE_GROWTH_GLOBAL1),
                EthCall(pool_address, abi.encode_ticks(tick_lower)),
                EthCall(pool_address, abi.encode_ticks(tick_upper)),
            ],
            block_number,
        )
        slot0_data, liquidity_data, growth0_data, growth1_data, lower_data, upper_data = results

        state = self._build_state(
            pool_address,
            fee,
            block_number,
            slot0_data,
            liquidity_data,
            fee_growth_global0=abi.decode_uint(growth0_data, "feeGrowthGlobal0X128"),
            fee_growth_global1=abi.decode_uint(growth1_data, "feeGrowthGlobal1X128"),
        )
        return state, abi.decode_ticks(tick_lower, lower_data), abi.decode_ticks(tick_upper, upper_data)

    @staticmethod
    def _build_state(
        pool_address: str,
        fee: int,
        block_number: Optional[int],
        slot0_data: bytes,
        liquidity_data: bytes,
        fee_growth_global0: Optional[int] = None,
        fee_growth_global1: Optional[int] = None,
    ) -> PoolState:
        # No code at the address: eth_call succeeds with empty return data
        if not slot0_data:
            raise InconsistentPoolState.pool_missing(pool_address)

        sqrt_price_x96, reported_tick = abi.decode_slot0(slot0_data)
        tick = verify_tick(pool_address, sqrt_price_x96, reported_tick)

        return PoolState(
            address=pool_address,
            sqrt_price_x96=sqrt_price_x96,
            tick=tick,
            liquidity=abi.decode_uint(liquidity_data, "liquidity"),
            fee=fee,
            fee_growth_global0=fee_growth_global0,
            fee_growth_global1=fee_growth_global1,
            block_number=block_number,
        )


class PositionReader:
    """
    Enumerates a holder's position NFTs on one position manager

    The holder may be a wallet or a vault contract; it is only ever used
    as an ERC-721 owner.
    """

    def __init__(self, rpc: RpcReader, position_manager: str):
        self._rpc = rpc
        self._position_manager = position_manager

    @property
    def position_manager(self) -> str:
        return self._position_manager

    async def balance_of(self, holder: str, block_number: Optional[int] = None) -> int:
        data = await self._rpc.call(self._position_manager, abi.encode_balance_of(holder), block_number)
        return abi.decode_uint(data, "balanceOf")

    async def token_ids(self, holder: str, block_number: Optional[int] = None) -> List[int]:
        """balanceOf(holder), then every tokenOfOwnerByIndex in one batch"""
        count = await self.balance_of(holder, block_number)
        if count == 0:
            return []

        results = await self._rpc.batch_call(
            [
                EthCall(self._position_manager, abi.encode_token_of_owner_by_index(holder, index))
                for index in range(count)
            ],
            block_number,
        )
        return [abi.decode_uint(data, "tokenOfOwnerByIndex") for data in results]

    async def load_many(
        self,
        token_ids: Sequence[int],
        owner: str,
        block_number: Optional[int] = None,
    ) -> Tuple[List[Position], List[PositionFailure]]:
        """
        positions(tokenId) for every id, one batch

        A failed or undecodable read becomes a PositionFailure for that id;
        the rest of the batch is unaffected.
        """
        if not token_ids:
            return [], []

        results = await self._rpc.batch_call(
            [EthCall(self._position_manager, abi.encode_positions(token_id)) for token_id in token_ids],
            block_number,
            allow_failure=True,
        )

        positions: List[Position] = []
        failures: List[PositionFailure] = []
        for token_id, result in zip(token_ids, results):
            if isinstance(result, RpcError):
                logger.warning(f"positions({token_id}) failed: {result}")
                failures.append(PositionFailure(token_id, result))
                continue
            try:
                positions.append(abi.decode_positions(token_id, owner, result))
            except AdapterError as e:
                logger.warning(f"positions({token_id}) could not be decoded: {e}")
                failures.append(PositionFailure(token_id, e))

        return positions, failures

    async def enumerate(
        self,
        holder: str,
        block_number: Optional[int] = None,
        include_noise: bool = False,
    ) -> Tuple[List[Position], List[PositionFailure]]:
        """
        All positions held by ``holder``

        Positions with zero liquidity and nothing owed are dropped unless
        ``include_noise`` is set.
        """
        token_ids = await self.token_ids(holder, block_number)
        positions, failures = await self.load_many(token_ids, holder, block_number)
        if not include_noise:
            kept = [position for position in positions if not position.is_noise]
            if len(kept) != len(positions):
                logger.debug(f"Dropped {len(positions) - len(kept)} empty positions for {holder}")
            positions = kept
        return positions, failures

    async def load(self, token_id: int, owner: str = "", block_number: Optional[int] = None) -> Position:
        """
        Single position

        Raises:
            PositionNotFound: positions() reverted (never minted or burned)
        """
        try:
            data = await self._rpc.call(self._position_manager, abi.encode_positions(token_id), block_number)
        except RpcError as e:
            if e.code == ErrorCode.RPC_CALL_REVERTED:
                raise PositionNotFound(token_id)
            raise
        return abi.decode_positions(token_id, owner, data)


class TokenReader:
    """Reads ERC-20 metadata (decimals, symbol, name) in one batch"""

    def __init__(self, rpc: RpcReader, chain_id: int):
        self._rpc = rpc
        self._chain_id = chain_id

    async def load(
        self,
        addresses: Sequence[str],
        block_number: Optional[int] = None,
    ) -> Tuple[Dict[str, Token], Dict[str, AdapterError]]:
        """
        Returns:
            (address -> Token, address -> error)

        An address without a usable uint8 decimals() lands in the error
        map, since amounts in that token would be meaningless. The other
        addresses are unaffected.
        """
        if not addresses:
            return {}, {}

        calls = []
        for address in addresses:
            calls.extend([
                EthCall(address, abi.DECIMALS),
                EthCall(address, abi.SYMBOL),
                EthCall(address, abi.NAME),
            ])
        results = await self._rpc.batch_call(calls, block_number, allow_failure=True)

        tokens: Dict[str, Token] = {}
        failures: Dict[str, AdapterError] = {}
        for index, address in enumerate(addresses):
            decimals_data, symbol_data, name_data = results[3 * index:3 * index + 3]
            try:
                decimals = self._decimals(address, decimals_data)
            except AdapterError as e:
                logger.warning(f"Token {address} metadata unavailable: {e}")
                failures[address] = e
                continue

            symbol = self._optional_string(symbol_data, f"symbol() of {address}") or address[:8]
            name = self._optional_string(name_data, f"name() of {address}")

            tokens[address] = Token(
                chain_id=self._chain_id,
                address=address,
                symbol=symbol,
                decimals=decimals,
                name=name,
            )
        return tokens, failures

    @staticmethod
    def _decimals(address: str, data) -> int:
        if isinstance(data, RpcError):
            raise data
        decimals = abi.decode_uint(data, f"decimals() of {address}")
        if decimals > 255:
            raise RpcError.malformed(f"decimals() of {address} ({decimals} does not fit uint8)")
        return decimals

    @staticmethod
    def _optional_string(data, what: str) -> str:
        if isinstance(data, RpcError):
            logger.debug(f"{what} failed: {data}")
            return ""
        try:
            return abi.decode_string(data, what)
        except RpcError as e:
            logger.debug(f"{what} undecodable: {e}")
            return ""
