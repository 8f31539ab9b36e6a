"""
Uniswap V3 platform adapter

Composes the pool address deriver, readers, amount/fee math and calldata
builder behind the PlatformAdapter interface. Forks that share the V3
position manager ABI (PancakeSwap V3) subclass this with their own name.

Read path:
    get_positions(holder) -> enumerate NFTs -> load pool + ticks per position
    (memoized per block) -> amounts + fees -> PositionSnapshot

Write path:
    build_*(...) -> validate -> TxRequest / ClosePlan for an external signer
"""

import asyncio
import logging
import time
from fractions import Fraction
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ...config import config as global_config
from ...errors import AdapterError, ConfigurationError, ValidationError
from ...infra.cache import BlockCache
from ...infra.rpc import RpcReader
from ...infra.tracing import log_with_correlation
from ...types import (
    ClosePlan,
    PoolState,
    Position,
    PositionFailure,
    PositionSnapshot,
    PositionView,
    Price,
    PriceRange,
    RangeMode,
    TickInfo,
    Token,
    TxRequest,
    sort_tokens,
    to_fraction,
)
from ..base import PlatformAdapter, unique_addresses
from ..chains import UNISWAP_V3, ChainRegistry
from .calldata import CalldataBuilder
from .liquidity import get_position_amounts, get_uncollected_fees, paired_amount
from .math import (
    align_tick,
    human_price,
    raw_from_human_price,
    raw_price_to_tick,
    sqrt_price_x96_to_raw_price,
    tick_to_raw_price,
    usable_tick_bounds,
    validate_tick_range,
)
from .pool_address import compute_pool_address
from .reader import PoolStateReader, PositionReader, TokenReader

logger = logging.getLogger(__name__)


class UniswapV3Adapter(PlatformAdapter):
    """
    Uniswap V3 adapter for one chain

    Usage:
        rpc = HttpRpcReader(1, registry.rpc_endpoints(1))
        adapter = UniswapV3Adapter(1, rpc)

        snapshot = await adapter.get_positions(holder)
        for view in snapshot.positions:
            print(view.token_id, view.in_range, view.fees0, view.fees1)

        plan = await adapter.build_close(token_id, recipient=holder)
    """

    name = UNISWAP_V3

    def __init__(
        self,
        chain_id: int,
        rpc: RpcReader,
        registry: Optional[ChainRegistry] = None,
        cache_size: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(chain_id, rpc, registry)
        if rpc.chain_id != chain_id:
            raise ConfigurationError.invalid(
                "rpc", f"RPC reader serves chain {rpc.chain_id}, adapter needs {chain_id}"
            )

        cache_size = cache_size or global_config.cache.max_pools
        self._pool_reader = PoolStateReader(rpc)
        self._position_reader = PositionReader(rpc, self.platform_config.position_manager)
        self._token_reader = TokenReader(rpc, chain_id)
        self._builder = CalldataBuilder(self.platform_config, chain_id, clock=clock)

        self._pool_cache: BlockCache[PoolState] = BlockCache(cache_size)
        self._range_cache: BlockCache[Tuple[PoolState, TickInfo, TickInfo]] = BlockCache(cache_size)
        # Token metadata never changes; keyed by lowercase address
        self._tokens: Dict[str, Token] = {}

    @property
    def builder(self) -> CalldataBuilder:
        return self._builder

    def invalidate_cache(self):
        self._pool_cache.invalidate()
        self._range_cache.invalidate()

    # =========================================================================
    # Price / tick conversion
    # =========================================================================

    @staticmethod
    def _orient(base: Token, quote: Token) -> Tuple[Token, Token, bool]:
        token0, token1 = sort_tokens(base, quote)
        return token0, token1, token0 == base

    def tick_to_price(self, tick: int, base: Token, quote: Token) -> Price:
        token0, token1, base_is_token0 = self._orient(base, quote)
        value = human_price(tick_to_raw_price(tick), token0.decimals, token1.decimals, base_is_token0)
        return Price(base, quote, value)

    def sqrt_price_to_price(self, sqrt_price_x96: int, base: Token, quote: Token) -> Price:
        """Current pool price as quote-per-base"""
        token0, token1, base_is_token0 = self._orient(base, quote)
        raw = sqrt_price_x96_to_raw_price(sqrt_price_x96)
        return Price(base, quote, human_price(raw, token0.decimals, token1.decimals, base_is_token0))

    def price_to_tick(self, price, base: Token, quote: Token) -> int:
        """
        floor(log_1.0001(raw token1/token0 price)) for a quote-per-base price

        Not aligned to any tick spacing; see range_to_ticks.
        """
        token0, token1, base_is_token0 = self._orient(base, quote)
        raw = raw_from_human_price(to_fraction(price), token0.decimals, token1.decimals, base_is_token0)
        return raw_price_to_tick(raw)

    def range_to_ticks(
        self,
        price_range: PriceRange,
        fee: int,
        base: Token,
        quote: Token,
        pool_state: Optional[PoolState] = None,
    ) -> Tuple[int, int]:
        """
        Resolve a PriceRange to aligned ticks

        Lower bound is floored and upper bound ceiled to the tick spacing,
        both clamped to the usable range. Relative ranges need the pool
        state for the current price.
        """
        tick_spacing = self.tick_spacing(fee)

        if price_range.mode == RangeMode.TICK_RANGE:
            tick_lower = int(price_range.lower)
            tick_upper = int(price_range.upper)
        elif price_range.is_relative:
            if pool_state is None:
                raise ValidationError(f"{price_range.mode.value} range needs the current pool state")
            current = self.sqrt_price_to_price(pool_state.sqrt_price_x96, base, quote).value
            lower_factor, upper_factor = price_range.factors()
            tick_lower, tick_upper = sorted((
                self.price_to_tick(current * lower_factor, base, quote),
                self.price_to_tick(current * upper_factor, base, quote),
            ))
        elif price_range.mode == RangeMode.ABSOLUTE:
            # Inverted orientation flips the tick order
            tick_lower, tick_upper = sorted((
                self.price_to_tick(Fraction(price_range.lower), base, quote),
                self.price_to_tick(Fraction(price_range.upper), base, quote),
            ))
        else:
            raise ConfigurationError.invalid("price_range.mode", f"Unsupported mode: {price_range.mode}")

        tick_lower = align_tick(tick_lower, tick_spacing, round_up=False)
        tick_upper = align_tick(tick_upper, tick_spacing, round_up=True)

        min_usable, max_usable = usable_tick_bounds(tick_spacing)
        tick_lower = max(min_usable, tick_lower)
        tick_upper = min(max_usable, tick_upper)

        if tick_lower >= tick_upper:
            if tick_lower + tick_spacing <= max_usable:
                tick_upper = tick_lower + tick_spacing
            else:
                tick_lower = tick_upper - tick_spacing

        return tick_lower, tick_upper

    def paired_amount(
        self,
        amount: int,
        amount_is_token0: bool,
        tick_lower: int,
        tick_upper: int,
        pool_state: PoolState,
    ) -> int:
        """Raw amount of the other token to deposit alongside ``amount``"""
        return paired_amount(amount, amount_is_token0, tick_lower, tick_upper, pool_state.sqrt_price_x96)

    # =========================================================================
    # Pools
    # =========================================================================

    def get_pool_address(self, token_a: str, token_b: str, fee: int) -> str:
        self.tick_spacing(fee)
        return compute_pool_address(
            self.platform_config.deployer,
            token_a,
            token_b,
            fee,
            self.platform_config.init_code_hash,
        )

    async def load_pool(self, pool_address: str, fee: int, block_number: Optional[int] = None) -> PoolState:
        """PoolState at a block, memoized per (pool, block)"""
        cached = self._pool_cache.get(pool_address, block_number)
        if cached is not None:
            return cached

        state = await self._pool_reader.load(pool_address, fee, block_number)
        self._pool_cache.put(pool_address, block_number, state)
        return state

    async def load_pool_for_range(
        self,
        pool_address: str,
        fee: int,
        tick_lower: int,
        tick_upper: int,
        block_number: Optional[int] = None,
    ) -> Tuple[PoolState, TickInfo, TickInfo]:
        """PoolState with fee growth plus both bound TickInfos, one batch"""
        range_key = f"{pool_address}:{tick_lower}:{tick_upper}"
        cached = self._range_cache.get(range_key, block_number)
        if cached is not None:
            return cached

        loaded = await self._pool_reader.load_with_ticks(pool_address, fee, tick_lower, tick_upper, block_number)
        self._range_cache.put(range_key, block_number, loaded)
        self._pool_cache.put(pool_address, block_number, loaded[0])
        return loaded

    async def resolve_tokens(
        self,
        addresses: Sequence[str],
        block_number: Optional[int] = None,
    ) -> Dict[str, Token]:
        """
        Token metadata for addresses: registry first, then on-chain

        Returns:
            Mapping keyed by the addresses as passed in

        Raises:
            AdapterError: Metadata for some address could not be read
        """
        tokens, failures = await self._resolve_tokens(addresses, block_number)
        for error in failures.values():
            raise error
        return tokens

    async def _resolve_tokens(
        self,
        addresses: Sequence[str],
        block_number: Optional[int] = None,
    ) -> Tuple[Dict[str, Token], Dict[str, AdapterError]]:
        """Resolved tokens and per-address failures, both keyed by the addresses as passed in"""
        missing: List[str] = []
        for address in unique_addresses(addresses):
            key = address.lower()
            if key in self._tokens:
                continue
            known = self.registry.find_token_by_address(self.chain_id, address)
            if known is not None:
                self._tokens[key] = known
            else:
                missing.append(address)

        errors: Dict[str, AdapterError] = {}
        if missing:
            loaded, load_failures = await self._token_reader.load(missing, block_number)
            for address, token in loaded.items():
                self._tokens[address.lower()] = token
            errors = {address.lower(): error for address, error in load_failures.items()}

        tokens: Dict[str, Token] = {}
        failures: Dict[str, AdapterError] = {}
        for address in addresses:
            key = address.lower()
            if key in self._tokens:
                tokens[address] = self._tokens[key]
            else:
                failures[address] = errors[key]
        return tokens, failures

    # =========================================================================
    # Positions
    # =========================================================================

    async def get_position(self, token_id: int, block_number: Optional[int] = None) -> Position:
        return await self._position_reader.load(token_id, block_number=block_number)

    async def _build_view(
        self,
        position: Position,
        block_number: Optional[int],
        tokens: Dict[str, Token],
    ) -> Tuple[PositionView, PoolState]:
        validate_tick_range(position.tick_lower, position.tick_upper, self.tick_spacing(position.fee))
        pool_address = self.get_pool_address(position.token0, position.token1, position.fee)
        state, lower, upper = await self.load_pool_for_range(
            pool_address, position.fee, position.tick_lower, position.tick_upper, block_number
        )
        token0 = tokens[position.token0]
        token1 = tokens[position.token1]

        amount0, amount1 = get_position_amounts(
            position.liquidity,
            position.tick_lower,
            position.tick_upper,
            state.tick,
            state.sqrt_price_x96,
        )
        fees0, fees1 = get_uncollected_fees(position, state, lower, upper)

        view = PositionView(
            position=position,
            platform=self.name,
            chain_id=self.chain_id,
            pool_address=pool_address,
            token0=token0,
            token1=token1,
            amount0=amount0,
            amount1=amount1,
            fees0=fees0,
            fees1=fees1,
            in_range=self.is_position_in_range(state.tick, position.tick_lower, position.tick_upper),
            price_lower=self.tick_to_price(position.tick_lower, token0, token1),
            price_upper=self.tick_to_price(position.tick_upper, token0, token1),
            current_price=self.sqrt_price_to_price(state.sqrt_price_x96, token0, token1),
            block_number=block_number,
        )
        return view, state

    async def get_position_view(self, position: Position, block_number: Optional[int] = None) -> PositionView:
        tokens = await self.resolve_tokens([position.token0, position.token1], block_number)
        view, _ = await self._build_view(position, block_number, tokens)
        return view

    async def get_positions(
        self,
        holder: str,
        block_number: Optional[int] = None,
        epoch: int = 0,
    ) -> PositionSnapshot:
        if block_number is None:
            block_number = await self.rpc.block_number()

        positions, failures = await self._position_reader.enumerate(holder, block_number)
        snapshot = PositionSnapshot(
            epoch=epoch,
            chain_id=self.chain_id,
            holder=holder,
            block_number=block_number,
        )
        for failure in failures:
            snapshot.mark_partial(PositionFailure(failure.token_id, failure.error, self.name))

        if not positions:
            return snapshot

        tokens, token_failures = await self._resolve_tokens(
            [address for position in positions for address in (position.token0, position.token1)],
            block_number,
        )
        snapshot.tokens.update({token.address: token for token in tokens.values()})

        viewable = []
        for position in positions:
            error = token_failures.get(position.token0) or token_failures.get(position.token1)
            if error is None:
                viewable.append(position)
                continue
            log_with_correlation(
                logging.WARNING,
                f"Position {position.token_id} skipped, token metadata unavailable: {error}",
                self.name,
                epoch=epoch,
                target_logger=logger,
                token_id=position.token_id,
            )
            snapshot.mark_partial(PositionFailure(position.token_id, error, self.name))
        positions = viewable

        results = await asyncio.gather(
            *(self._build_view(position, block_number, tokens) for position in positions),
            return_exceptions=True,
        )
        for position, result in zip(positions, results):
            if isinstance(result, AdapterError):
                log_with_correlation(
                    logging.WARNING,
                    f"Position {position.token_id} failed: {result}",
                    self.name,
                    epoch=epoch,
                    target_logger=logger,
                    token_id=position.token_id,
                )
                snapshot.mark_partial(PositionFailure(position.token_id, result, self.name))
            elif isinstance(result, BaseException):
                raise result
            else:
                view, state = result
                snapshot.positions.append(view)
                snapshot.pools[view.pool_address] = state

        log_with_correlation(
            logging.INFO,
            f"{len(snapshot.positions)} positions at block {block_number} "
            f"({len(snapshot.failures)} failed)",
            self.name,
            epoch=epoch,
            target_logger=logger,
        )
        return snapshot

    # =========================================================================
    # Calldata
    # =========================================================================

    @staticmethod
    def _slippage(slippage_bps: Optional[int]) -> int:
        return global_config.trading.default_lp_slippage_bps if slippage_bps is None else slippage_bps

    def _deadline(self, deadline: Optional[int]) -> int:
        return self._builder.deadline_from_now() if deadline is None else deadline

    async def _position_with_pool(self, token_id: int) -> Tuple[Position, Optional[PoolState]]:
        """Position and its pool read at the same block (pool skipped when liquidity is zero)"""
        block_number = await self.rpc.block_number()
        position = await self.get_position(token_id, block_number)
        if position.liquidity == 0:
            return position, None
        pool_address = self.get_pool_address(position.token0, position.token1, position.fee)
        return position, await self.load_pool(pool_address, position.fee, block_number)

    def build_mint(
        self,
        token0: str,
        token1: str,
        fee: int,
        tick_lower: int,
        tick_upper: int,
        amount0_desired: int,
        amount1_desired: int,
        recipient: str,
        slippage_bps: Optional[int] = None,
        deadline: Optional[int] = None,
    ) -> TxRequest:
        return self._builder.build_mint(
            token0,
            token1,
            fee,
            tick_lower,
            tick_upper,
            amount0_desired,
            amount1_desired,
            self._slippage(slippage_bps),
            recipient,
            self._deadline(deadline),
        )

    async def build_mint_for_range(
        self,
        token_a: Token,
        token_b: Token,
        fee: int,
        price_range: PriceRange,
        amount0_desired: int,
        amount1_desired: int,
        recipient: str,
        slippage_bps: Optional[int] = None,
        deadline: Optional[int] = None,
    ) -> TxRequest:
        """
        Mint around the current pool price

        The range is expressed as token1-per-token0 after sorting the tokens;
        amounts are for token0 and token1 in that order.
        """
        token0, token1 = sort_tokens(token_a, token_b)
        pool_state = None
        if price_range.is_relative:
            pool_address = self.get_pool_address(token0.address, token1.address, fee)
            pool_state = await self.load_pool(pool_address, fee, await self.rpc.block_number())

        tick_lower, tick_upper = self.range_to_ticks(price_range, fee, token0, token1, pool_state)
        return self.build_mint(
            token0.address,
            token1.address,
            fee,
            tick_lower,
            tick_upper,
            amount0_desired,
            amount1_desired,
            recipient,
            slippage_bps,
            deadline,
        )

    def build_increase(
        self,
        token_id: int,
        amount0_desired: int,
        amount1_desired: int,
        slippage_bps: Optional[int] = None,
        deadline: Optional[int] = None,
    ) -> TxRequest:
        return self._builder.build_increase(
            token_id,
            amount0_desired,
            amount1_desired,
            self._slippage(slippage_bps),
            self._deadline(deadline),
        )

    async def build_decrease(
        self,
        token_id: int,
        percentage_bps: int,
        slippage_bps: Optional[int] = None,
        deadline: Optional[int] = None,
    ) -> TxRequest:
        self._builder.validate_percentage(percentage_bps)
        position, pool_state = await self._position_with_pool(token_id)
        if pool_state is None:
            raise ValidationError(f"Position {token_id} has no liquidity to decrease")
        return self._builder.build_decrease(
            position,
            pool_state,
            percentage_bps,
            self._slippage(slippage_bps),
            self._deadline(deadline),
        )

    def build_collect(self, token_id: int, recipient: str) -> TxRequest:
        return self._builder.build_collect(token_id, recipient)

    async def build_burn(self, token_id: int) -> TxRequest:
        position = await self.get_position(token_id)
        return self._builder.build_burn(position)

    async def build_remove_liquidity(
        self,
        token_id: int,
        percentage_bps: int,
        recipient: str,
        slippage_bps: Optional[int] = None,
        deadline: Optional[int] = None,
    ) -> ClosePlan:
        self._builder.validate_percentage(percentage_bps)
        position, pool_state = await self._position_with_pool(token_id)
        if pool_state is None:
            raise ValidationError(f"Position {token_id} has no liquidity to remove")
        return self._builder.build_remove_liquidity(
            position,
            pool_state,
            percentage_bps,
            recipient,
            self._slippage(slippage_bps),
            self._deadline(deadline),
        )

    async def build_close(
        self,
        token_id: int,
        recipient: str,
        slippage_bps: Optional[int] = None,
        deadline: Optional[int] = None,
        burn: bool = True,
        require_atomic: bool = False,
    ) -> ClosePlan:
        position, pool_state = await self._position_with_pool(token_id)
        return self._builder.build_close(
            position,
            pool_state,
            recipient,
            self._slippage(slippage_bps),
            self._deadline(deadline),
            burn=burn,
            require_atomic=require_atomic,
        )
