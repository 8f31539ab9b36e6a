"""
Position manager calldata builder

Validates every input first; no TxRequest is produced when any check
fails. The builder never reads the chain itself: decrease/close take the
Position and PoolState the adapter has already loaded.
"""

import logging
import time
from typing import Callable, List, Optional

from web3 import Web3

from ...config import config as global_config
from ...errors import (
    AmountsZero,
    ConfigurationError,
    DeadlineInPast,
    OperationNotSupported,
    SlippageOutOfRange,
    ValidationError,
)
from ...types import ClosePlan, PoolState, Position, TxRequest
from ...types.common import address_key
from ..chains import PlatformConfig
from .abi import PositionManagerEncoder
from .liquidity import get_position_amounts
from .math import UINT128_MAX, validate_tick_range

logger = logging.getLogger(__name__)

BPS_DENOMINATOR = 10000


def slippage_min(amount: int, slippage_bps: int) -> int:
    """floor(amount * (10000 - slippage_bps) / 10000)"""
    return amount * (BPS_DENOMINATOR - slippage_bps) // BPS_DENOMINATOR


def _checksum(address: str, what: str) -> str:
    try:
        return Web3.to_checksum_address(address)
    except (ValueError, TypeError):
        raise ValidationError(f"Invalid {what} address: {address}", details={what: address})


class CalldataBuilder:
    """
    Builds mint / increaseLiquidity / decreaseLiquidity / collect / burn
    calldata for one platform deployment

    Usage:
        builder = CalldataBuilder(platform_config, chain_id=1)
        tx = builder.build_mint(usdc, weth, 3000, -600, 600, a0, a1, 50, recipient, deadline)
        plan = builder.build_close(position, pool_state, recipient, 50, deadline)
    """

    def __init__(
        self,
        platform_config: PlatformConfig,
        chain_id: int,
        min_slippage_bps: Optional[int] = None,
        max_slippage_bps: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._platform = platform_config
        self._chain_id = chain_id
        self._min_slippage_bps = (
            global_config.trading.min_slippage_bps if min_slippage_bps is None else min_slippage_bps
        )
        self._max_slippage_bps = (
            global_config.trading.max_slippage_bps if max_slippage_bps is None else max_slippage_bps
        )
        self._clock = clock
        self._encoder = PositionManagerEncoder()

    @property
    def position_manager(self) -> str:
        return self._platform.position_manager

    # =========================================================================
    # Validation
    # =========================================================================

    def tick_spacing(self, fee: int) -> int:
        spacing = self._platform.tick_spacing_by_fee.get(fee)
        if spacing is None:
            raise ConfigurationError.unknown_fee_tier(self._platform.platform, self._chain_id, fee)
        return spacing

    def validate_slippage(self, slippage_bps: int):
        if not self._min_slippage_bps <= slippage_bps <= self._max_slippage_bps:
            raise SlippageOutOfRange(slippage_bps, self._min_slippage_bps, self._max_slippage_bps)

    def now(self) -> int:
        return int(self._clock())

    def validate_deadline(self, deadline: int):
        now = self.now()
        if deadline <= now:
            raise DeadlineInPast(deadline, now)

    def deadline_from_now(self, seconds: Optional[int] = None) -> int:
        """Unix deadline ``seconds`` ahead (EVM_TX_DEADLINE_SECONDS by default)"""
        if seconds is None:
            seconds = global_config.evm.tx_deadline_seconds
        return self.now() + seconds

    @staticmethod
    def validate_percentage(percentage_bps: int):
        if not 1 <= percentage_bps <= BPS_DENOMINATOR:
            raise ValidationError.invalid_percentage(percentage_bps)

    def _tx(self, data: bytes, description: str) -> TxRequest:
        return TxRequest(to=self.position_manager, data=data, value=0, description=description)

    # =========================================================================
    # Single operations
    # =========================================================================

    def build_mint(
        self,
        token0: str,
        token1: str,
        fee: int,
        tick_lower: int,
        tick_upper: int,
        amount0_desired: int,
        amount1_desired: int,
        slippage_bps: int,
        recipient: str,
        deadline: int,
    ) -> TxRequest:
        """
        Create a new position

        Raises:
            ValidationError: Same or unordered tokens, invalid recipient
            ConfigurationError: Unknown fee tier
            TickUnaligned / TickOutOfRange: Bad range
            SlippageOutOfRange / DeadlineInPast / AmountsZero
        """
        token0 = _checksum(token0, "token0")
        token1 = _checksum(token1, "token1")
        if address_key(token0) == address_key(token1):
            raise ValidationError.same_token(token0)
        if address_key(token0) > address_key(token1):
            raise ValidationError.unordered_tokens(token0, token1)
        recipient = _checksum(recipient, "recipient")

        validate_tick_range(tick_lower, tick_upper, self.tick_spacing(fee))
        self.validate_slippage(slippage_bps)
        self.validate_deadline(deadline)
        if amount0_desired < 0 or amount1_desired < 0:
            raise ValidationError("Desired amounts must not be negative")
        if amount0_desired == 0 and amount1_desired == 0:
            raise AmountsZero("mint")

        data = self._encoder.encode_mint(
            token0,
            token1,
            fee,
            tick_lower,
            tick_upper,
            amount0_desired,
            amount1_desired,
            slippage_min(amount0_desired, slippage_bps),
            slippage_min(amount1_desired, slippage_bps),
            recipient,
            deadline,
        )
        return self._tx(data, "mint")

    def build_increase(
        self,
        token_id: int,
        amount0_desired: int,
        amount1_desired: int,
        slippage_bps: int,
        deadline: int,
    ) -> TxRequest:
        """Add liquidity to an existing position"""
        self.validate_slippage(slippage_bps)
        self.validate_deadline(deadline)
        if amount0_desired < 0 or amount1_desired < 0:
            raise ValidationError("Desired amounts must not be negative")
        if amount0_desired == 0 and amount1_desired == 0:
            raise AmountsZero("increaseLiquidity")

        data = self._encoder.encode_increase_liquidity(
            token_id,
            amount0_desired,
            amount1_desired,
            slippage_min(amount0_desired, slippage_bps),
            slippage_min(amount1_desired, slippage_bps),
            deadline,
        )
        return self._tx(data, "increaseLiquidity")

    def build_decrease(
        self,
        position: Position,
        pool_state: PoolState,
        percentage_bps: int,
        slippage_bps: int,
        deadline: int,
    ) -> TxRequest:
        """
        Remove ``percentage_bps`` of a position's liquidity

        The expected amounts for the liquidity delta at the current pool
        price set the slippage floors.
        """
        self.validate_percentage(percentage_bps)
        self.validate_slippage(slippage_bps)
        self.validate_deadline(deadline)

        liquidity_delta = position.liquidity * percentage_bps // BPS_DENOMINATOR
        if liquidity_delta == 0:
            raise AmountsZero("decreaseLiquidity")

        amount0, amount1 = get_position_amounts(
            liquidity_delta,
            position.tick_lower,
            position.tick_upper,
            pool_state.tick,
            pool_state.sqrt_price_x96,
        )
        data = self._encoder.encode_decrease_liquidity(
            position.token_id,
            liquidity_delta,
            slippage_min(amount0, slippage_bps),
            slippage_min(amount1, slippage_bps),
            deadline,
        )
        return self._tx(data, "decreaseLiquidity")

    def build_collect(self, token_id: int, recipient: str) -> TxRequest:
        """Collect everything owed (MaxUint128 for both tokens)"""
        recipient = _checksum(recipient, "recipient")
        data = self._encoder.encode_collect(token_id, recipient, UINT128_MAX, UINT128_MAX)
        return self._tx(data, "collect")

    def build_burn(self, position: Position) -> TxRequest:
        """
        Burn the NFT

        Raises:
            ValidationError: Position still has liquidity or owed tokens
        """
        if not position.is_burnable:
            raise ValidationError(
                f"Position {position.token_id} cannot be burned: liquidity={position.liquidity}, "
                f"owed=({position.tokens_owed0}, {position.tokens_owed1})",
                details={"token_id": position.token_id},
            )
        return self._tx(self._encoder.encode_burn(position.token_id), "burn")

    # =========================================================================
    # Composite operations
    # =========================================================================

    def build_remove_liquidity(
        self,
        position: Position,
        pool_state: PoolState,
        percentage_bps: int,
        recipient: str,
        slippage_bps: int,
        deadline: int,
    ) -> ClosePlan:
        """Decrease by ``percentage_bps`` then collect, packaged like a close without burn"""
        steps = [
            self.build_decrease(position, pool_state, percentage_bps, slippage_bps, deadline),
            self.build_collect(position.token_id, recipient),
        ]
        return self._package(position.token_id, steps, burns=False)

    def build_close(
        self,
        position: Position,
        pool_state: Optional[PoolState],
        recipient: str,
        slippage_bps: int,
        deadline: int,
        burn: bool = True,
        require_atomic: bool = False,
    ) -> ClosePlan:
        """
        Decrease 100%, collect everything, optionally burn

        The decrease step is skipped when the position has no liquidity
        left. With multicall support the steps are one atomic transaction;
        otherwise they are separate transactions that must be confirmed in
        order.

        Raises:
            OperationNotSupported: ``require_atomic`` on a platform without
                multicall when the close needs more than one step
        """
        self.validate_slippage(slippage_bps)
        self.validate_deadline(deadline)
        recipient = _checksum(recipient, "recipient")

        steps: List[TxRequest] = []
        if position.liquidity > 0:
            steps.append(self.build_decrease(position, pool_state, BPS_DENOMINATOR, slippage_bps, deadline))
        steps.append(self.build_collect(position.token_id, recipient))
        if burn:
            # Burn runs after the collect above, when liquidity and owed are zero
            steps.append(self._tx(self._encoder.encode_burn(position.token_id), "burn"))

        return self._package(position.token_id, steps, burns=burn, require_atomic=require_atomic)

    def _package(
        self,
        token_id: int,
        steps: List[TxRequest],
        burns: bool,
        require_atomic: bool = False,
    ) -> ClosePlan:
        if len(steps) == 1:
            return ClosePlan(token_id=token_id, transactions=steps, atomic=True, burns=burns)

        if self._platform.supports_multicall:
            data = self._encoder.encode_multicall([step.data for step in steps])
            description = "multicall(" + ", ".join(step.description for step in steps) + ")"
            return ClosePlan(
                token_id=token_id,
                transactions=[self._tx(data, description)],
                atomic=True,
                burns=burns,
            )

        if require_atomic:
            raise OperationNotSupported.not_implemented("atomic close", self._platform.platform)
        logger.debug(f"{self._platform.platform} has no multicall; close of {token_id} is {len(steps)} transactions")
        return ClosePlan(token_id=token_id, transactions=steps, atomic=False, burns=burns)
