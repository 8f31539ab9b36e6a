"""
Signer collaborator

The adapters never sign or send anything; they return TxRequests. A UI or
bot holds a Signer (wallet connection, local key, vault executor) and hands
it the requests. ``submit_plan`` is the one helper that drives a Signer,
confirming each step before sending the next.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence, Union

from ..errors import ErrorCode, is_user_rejection
from ..types import ClosePlan, TxRequest, TxResult

logger = logging.getLogger(__name__)


class Signer(ABC):
    """Sends transactions on behalf of the holder"""

    @abstractmethod
    async def send_transaction(self, request: TxRequest) -> str:
        """Submit the request and return the transaction hash"""
        ...

    @abstractmethod
    async def wait(self, tx_hash: str) -> Dict[str, Any]:
        """
        Wait for the receipt

        Returns:
            Receipt dict with at least ``status`` (1 success, 0 reverted)
            and ``blockNumber``
        """
        ...


async def submit_plan(
    signer: Signer,
    plan: Union[ClosePlan, Sequence[TxRequest]],
) -> List[TxResult]:
    """
    Send transactions one at a time, waiting for each receipt

    Stops at the first step that fails or that the user rejects; the steps
    after it are reported as SKIPPED. A rejection is a distinct outcome and
    is logged at INFO.

    Args:
        signer: Signer to submit through
        plan: ClosePlan or list of TxRequests in execution order

    Returns:
        One TxResult per request, in order
    """
    requests = list(plan.transactions if isinstance(plan, ClosePlan) else plan)
    results: List[TxResult] = []

    for index, request in enumerate(requests):
        label = request.description or f"step {index + 1}"

        try:
            tx_hash = await signer.send_transaction(request)
        except Exception as e:
            if is_user_rejection(e):
                logger.info(f"User rejected {label}")
                results.append(TxResult.rejected(request=request))
            else:
                logger.error(f"Failed to send {label}: {e}")
                results.append(TxResult.failed(str(e), error_code=ErrorCode.TX_SEND_FAILED.value, request=request))
            break

        try:
            receipt = await signer.wait(tx_hash)
        except Exception as e:
            logger.error(f"Failed waiting for {label} ({tx_hash}): {e}")
            results.append(TxResult.failed(
                str(e),
                tx_hash=tx_hash,
                error_code=ErrorCode.TX_CONFIRMATION_FAILED.value,
                request=request,
            ))
            break

        block_number = receipt.get("blockNumber")
        if receipt.get("status") == 1:
            logger.info(f"{label} confirmed: {tx_hash}")
            results.append(TxResult.success(tx_hash, block_number=block_number, request=request))
        else:
            logger.error(f"{label} reverted: {tx_hash}")
            results.append(TxResult.failed(
                "Transaction reverted",
                tx_hash=tx_hash,
                error_code=ErrorCode.TX_CONFIRMATION_FAILED.value,
                block_number=block_number,
                request=request,
            ))
            break

    for request in requests[len(results):]:
        results.append(TxResult.skipped(request=request))

    return results
