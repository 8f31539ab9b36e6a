"""
Result type definitions for calldata and submissions
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


@dataclass(frozen=True)
class TxRequest:
    """
    Unsigned transaction request handed to an external signer

    Attributes:
        to: Target contract (position manager)
        data: ABI-encoded calldata
        value: Native value in wei
        description: Short label for UIs and logs (e.g., "mint", "collect")
    """
    to: str
    data: bytes
    value: int = 0
    description: str = ""

    @property
    def selector(self) -> bytes:
        return self.data[:4]

    def to_dict(self) -> dict:
        """ethers/web3 style transaction dict"""
        return {
            "to": self.to,
            "data": "0x" + self.data.hex(),
            "value": self.value,
        }


@dataclass(frozen=True)
class ClosePlan:
    """
    Transactions that close a position

    When ``atomic`` is True the plan is a single multicall transaction;
    otherwise each transaction must be confirmed before sending the next.
    """
    token_id: int
    transactions: List[TxRequest]
    atomic: bool
    burns: bool

    def __len__(self) -> int:
        return len(self.transactions)


class TxStatus(Enum):
    """Submission outcome"""
    SUCCESS = "success"
    FAILED = "failed"
    REJECTED = "rejected"  # user declined in the wallet; not an error
    SKIPPED = "skipped"    # not sent because an earlier step did not succeed


@dataclass
class TxResult:
    """
    Outcome of submitting one TxRequest through a signer

    Attributes:
        status: Submission status
        tx_hash: Transaction hash if sent
        error: Error message if failed
        error_code: Error code for programmatic handling
        block_number: Block the receipt landed in
        request: The request that was submitted
    """
    status: TxStatus
    tx_hash: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    block_number: Optional[int] = None
    request: Optional[TxRequest] = None
    logs: List[str] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return self.status == TxStatus.SUCCESS

    @property
    def is_rejected(self) -> bool:
        return self.status == TxStatus.REJECTED

    @classmethod
    def success(cls, tx_hash: str, **kwargs) -> "TxResult":
        return cls(status=TxStatus.SUCCESS, tx_hash=tx_hash, **kwargs)

    @classmethod
    def failed(cls, error: str, tx_hash: str = None, **kwargs) -> "TxResult":
        return cls(status=TxStatus.FAILED, tx_hash=tx_hash, error=error, **kwargs)

    @classmethod
    def rejected(cls, **kwargs) -> "TxResult":
        return cls(
            status=TxStatus.REJECTED,
            error="Rejected by user",
            error_code="2010",
            **kwargs
        )

    @classmethod
    def skipped(cls, reason: str = "Previous step did not succeed", **kwargs) -> "TxResult":
        return cls(status=TxStatus.SKIPPED, error=reason, **kwargs)

    def __str__(self) -> str:
        if self.is_success:
            return f"TxResult(SUCCESS, {self.tx_hash})"
        return f"TxResult({self.status.value}, error={self.error})"
