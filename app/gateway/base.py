"""
Payment gateway facade.

The card-present SDK is a black box. Everything the service needs from it goes
through PaymentGateway; the session handle is passed in explicitly rather than
looked up from a process-wide singleton.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, AsyncIterator, Optional

from app.models.amounts import AmountMode, PaymentBreakdown
from app.models.operations import PaymentOperation
from app.models.transaction import TransactionKind, TransactionRecord, TransactionResponseEvent


class GatewayError(Exception):
    """Raised by a gateway call that fails outside the event stream."""

    def __init__(self, short_message: str, category: Optional[str] = None, message: Optional[str] = None):
        self.short_message = short_message
        self.category = category
        super().__init__(message if message is not None else short_message)


@dataclass(frozen=True)
class GatewaySession:
    """Authenticated merchant session shared by every consumer of one gateway."""
    merchant_id: str
    location_id: Optional[str] = None
    api_key: Optional[str] = None


@dataclass(frozen=True)
class Readiness:
    is_ready_for_transactions: bool
    status_message: str


@dataclass(frozen=True)
class TerminalHost:
    """The card-reader host a transaction is launched on."""
    terminal_id: str
    handle: Any = None


class PaymentGateway(ABC):

    def __init__(self, session: GatewaySession):
        self.session = session

    @abstractmethod
    def readiness(self) -> Readiness:
        ...

    @abstractmethod
    def start_transaction(
        self,
        kind: TransactionKind,
        amount: int,
        breakdown: PaymentBreakdown,
        currency: str,
        idempotency_key: str,
        host: TerminalHost,
    ) -> AsyncIterator[TransactionResponseEvent]:
        """Launch a preauth or sale and return its ordered event stream."""
        ...

    @abstractmethod
    async def confirm_surcharge(
        self,
        transaction_id: str,
        confirm: bool,
        breakdown: Optional[PaymentBreakdown] = None,
        amount: Optional[int] = None,
    ) -> TransactionRecord:
        """Accept or decline a pending surcharge, optionally with a replacement breakdown."""
        ...

    @abstractmethod
    async def get_transaction(self, transaction_id: str) -> Optional[TransactionRecord]:
        ...

    @abstractmethod
    async def list_transactions(self) -> list[TransactionRecord]:
        ...

    @abstractmethod
    async def run_operation(
        self,
        operation: PaymentOperation,
        transaction_id: str,
        amount: Optional[int] = None,
        tip_mode: Optional[AmountMode] = None,
        tip_percentage: Optional[Decimal] = None,
    ) -> TransactionRecord:
        ...

    @abstractmethod
    async def send_receipt(self, transaction_id: str, email: Optional[str], phone: Optional[str]) -> None:
        ...
