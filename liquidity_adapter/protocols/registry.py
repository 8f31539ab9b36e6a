"""
Platform adapter registry

Provides centralized registration and construction of platform adapters,
and the AdapterSet that runs epoch-counted refreshes over all adapters of
one chain.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Type

from ..errors import (
    AdapterError,
    ConfigurationError,
    PartialResult,
    RefreshSuperseded,
)
from ..infra.rpc import RpcReader
from ..infra.tracing import CorrelationContext, EpochCounter, log_with_correlation
from ..types import PositionFailure, PositionSnapshot
from .base import PlatformAdapter
from .chains import ChainRegistry, get_chain_registry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdapterFailure:
    """A platform listed for the chain whose adapter could not be built"""
    platform: str
    error: Exception

    def __str__(self) -> str:
        return f"{self.platform}: {self.error}"


class AdapterSet:
    """
    All adapters for one chain sharing one RpcReader

    ``refresh`` is the orchestration entry point: each call is a new epoch
    (pick one block, invalidate caches, fan out, gather, publish). A refresh
    that finishes after a newer one started raises RefreshSuperseded and
    its results are dropped.

    Usage:
        adapters = AdapterFactory.for_chain(1, rpc)
        snapshot = await adapters.refresh(holder)
    """

    def __init__(
        self,
        chain_id: int,
        rpc: RpcReader,
        adapters: List[PlatformAdapter],
        failures: Optional[List[AdapterFailure]] = None,
    ):
        self.chain_id = chain_id
        self.rpc = rpc
        self.adapters = adapters
        self.failures = failures or []
        self._epochs = EpochCounter()

    @property
    def current_epoch(self) -> int:
        return self._epochs.current

    def get(self, platform: str) -> PlatformAdapter:
        for adapter in self.adapters:
            if adapter.name == platform:
                return adapter
        raise ConfigurationError.invalid(
            "platform", f"No {platform} adapter on chain {self.chain_id}"
        )

    def _check_epoch(self, epoch: int):
        if not self._epochs.is_current(epoch):
            log_with_correlation(
                logging.DEBUG,
                f"Discarding results, superseded by epoch {self._epochs.current}",
                "refresh",
                epoch=epoch,
                target_logger=logger,
            )
            raise RefreshSuperseded(epoch, self._epochs.current)

    async def refresh(self, holder: str, raise_on_partial: bool = False) -> PositionSnapshot:
        """
        One refresh epoch for ``holder`` across every platform

        Raises:
            RefreshSuperseded: A newer refresh started before this one finished
            PartialResult: Some reads failed and ``raise_on_partial`` is set;
                the partial snapshot is attached
            RpcError: The target block could not be determined
        """
        epoch = self._epochs.next()

        with CorrelationContext("refresh"):
            for adapter in self.adapters:
                adapter.invalidate_cache()

            block_number = await self.rpc.block_number()
            self._check_epoch(epoch)

            log_with_correlation(
                logging.INFO,
                f"Refreshing {holder} on chain {self.chain_id} at block {block_number}",
                "refresh",
                epoch=epoch,
                target_logger=logger,
            )

            results = await asyncio.gather(
                *(adapter.get_positions(holder, block_number, epoch) for adapter in self.adapters),
                return_exceptions=True,
            )
            self._check_epoch(epoch)

            snapshot = PositionSnapshot(
                epoch=epoch,
                chain_id=self.chain_id,
                holder=holder,
                block_number=block_number,
            )
            for failure in self.failures:
                snapshot.mark_partial(PositionFailure(None, failure.error, failure.platform))

            for adapter, result in zip(self.adapters, results):
                if isinstance(result, AdapterError):
                    log_with_correlation(
                        logging.WARNING,
                        f"{adapter.name} failed: {result}",
                        "refresh",
                        epoch=epoch,
                        target_logger=logger,
                    )
                    snapshot.mark_partial(PositionFailure(None, result, adapter.name))
                elif isinstance(result, BaseException):
                    raise result
                else:
                    snapshot.merge(result)

            if snapshot.partial:
                log_with_correlation(
                    logging.WARNING,
                    f"Partial snapshot: {len(snapshot.positions)} positions, {len(snapshot.failures)} failures",
                    "refresh",
                    epoch=epoch,
                    target_logger=logger,
                )
                if raise_on_partial:
                    raise PartialResult(
                        f"{len(snapshot.failures)} reads failed in epoch {epoch}", snapshot
                    )

            return snapshot


class AdapterFactory:
    """
    Registry for platform adapters

    Usage:
        # Register adapter class
        AdapterFactory.register("uniswap_v3", UniswapV3Adapter)

        # Single adapter
        adapter = AdapterFactory.get("uniswap_v3", 1, rpc)

        # Every platform on a chain
        adapters = AdapterFactory.for_chain(1, rpc)
    """

    # Registered adapter classes
    _adapters: Dict[str, Type[PlatformAdapter]] = {}

    @classmethod
    def register(cls, name: str, adapter_class: Type[PlatformAdapter]):
        """
        Args:
            name: Platform name (e.g., "uniswap_v3")
            adapter_class: Adapter class (not instance)
        """
        cls._adapters[name.lower()] = adapter_class
        logger.debug(f"Registered platform adapter: {name}")

    @classmethod
    def get(
        cls,
        platform: str,
        chain_id: int,
        rpc: RpcReader,
        registry: Optional[ChainRegistry] = None,
    ) -> PlatformAdapter:
        """
        Build the adapter for (platform, chain)

        Raises:
            ConfigurationError: Unknown chain, unregistered platform, or RPC
                reader scoped to another chain
            UnsupportedPlatform: Platform not deployed on the chain
        """
        name = platform.lower()
        if name not in cls._adapters:
            cls._try_load_adapter(name)

        if name not in cls._adapters:
            available = ", ".join(sorted(cls._adapters)) or "none"
            raise ConfigurationError.invalid(
                "platform", f"Unknown platform: {platform}. Available platforms: {available}"
            )

        registry = registry or get_chain_registry()
        registry.get_platform(name, chain_id)
        return cls._adapters[name](chain_id, rpc, registry)

    @classmethod
    def for_chain(
        cls,
        chain_id: int,
        rpc: RpcReader,
        registry: Optional[ChainRegistry] = None,
    ) -> AdapterSet:
        """
        Adapters for every platform the registry lists on ``chain_id``

        A platform whose adapter cannot be built is reported in
        ``AdapterSet.failures`` instead of failing the whole chain.

        Raises:
            ConfigurationError: Unknown chain
        """
        registry = registry or get_chain_registry()
        adapters: List[PlatformAdapter] = []
        failures: List[AdapterFailure] = []

        for platform in registry.platforms_for(chain_id):
            try:
                adapters.append(cls.get(platform, chain_id, rpc, registry))
            except AdapterError as e:
                logger.warning(f"Adapter {platform} unavailable on chain {chain_id}: {e}")
                failures.append(AdapterFailure(platform, e))

        return AdapterSet(chain_id, rpc, adapters, failures)

    @classmethod
    def list(cls) -> List[str]:
        """List registered platform names"""
        cls._ensure_loaded()
        return list(cls._adapters.keys())

    @classmethod
    def is_registered(cls, name: str) -> bool:
        return name.lower() in cls._adapters

    @classmethod
    def _try_load_adapter(cls, name: str):
        """Lazy import of built-in adapters"""
        if name == "uniswap_v3":
            from .uniswap_v3 import UniswapV3Adapter
            cls.register("uniswap_v3", UniswapV3Adapter)
        elif name == "pancakeswap_v3":
            from .pancakeswap_v3 import PancakeSwapV3Adapter
            cls.register("pancakeswap_v3", PancakeSwapV3Adapter)

    @classmethod
    def _ensure_loaded(cls):
        for name in ["uniswap_v3", "pancakeswap_v3"]:
            if name not in cls._adapters:
                cls._try_load_adapter(name)


def get_adapter(platform: str, chain_id: int, rpc: RpcReader) -> PlatformAdapter:
    """Convenience wrapper for AdapterFactory.get"""
    return AdapterFactory.get(platform, chain_id, rpc)


def register_adapter(name: str, adapter_class: Type[PlatformAdapter]):
    """Convenience wrapper for AdapterFactory.register"""
    AdapterFactory.register(name, adapter_class)
