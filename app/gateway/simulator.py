"""
In-memory payment gateway used for demos and tests.

Approves everything up to a configurable limit, asks for surcharge
confirmation when a surcharge is present and not bypassed, and keeps every
transaction in the repository store so history and post-transaction
operations behave like the real thing.
"""
import asyncio
import logging
import uuid
from collections import deque
from datetime import datetime, timezone
from decimal import Decimal, ROUND_DOWN
from typing import AsyncIterator, Iterable, Optional

from app.gateway.base import GatewayError, GatewaySession, PaymentGateway, Readiness, TerminalHost
from app.models.amounts import AmountMode, PaymentBreakdown
from app.models.operations import PaymentOperation
from app.models.transaction import (
    ActionStatus,
    FinalStatus,
    FinalStatusValue,
    TransactionKind,
    TransactionRecord,
    TransactionResponseEvent,
    TransactionStatus,
)
from app.repository.store import InMemoryStore

logger = logging.getLogger(__name__)

READER_PROGRESS = ("waitingForCard", "cardDetected", "processing")
DECLINE_STATUS_CODE = 5


class SimulatedGateway(PaymentGateway):

    def __init__(
        self,
        session: GatewaySession,
        store: InMemoryStore,
        event_delay: float = 0.0,
        require_surcharge_confirmation: bool = True,
        decline_above_cents: int = 1_000_000,
    ):
        super().__init__(session)
        self._store = store
        self.event_delay = event_delay
        self.require_surcharge_confirmation = require_surcharge_confirmation
        self.decline_above_cents = decline_above_cents
        self.ready = True
        self.readiness_message = "Ready for transactions"
        self.start_failure: Optional[Exception] = None
        self.confirm_failure: Optional[Exception] = None
        self.calls: list[tuple] = []
        self._scripts: deque[list[TransactionResponseEvent]] = deque()

    # ── Test hooks ──────────────────────────────────────────────────────────

    def queue_script(self, events: Iterable[TransactionResponseEvent]) -> None:
        """Make the next start_transaction emit exactly these events."""
        self._scripts.append(list(events))

    # ── PaymentGateway ──────────────────────────────────────────────────────

    def readiness(self) -> Readiness:
        return Readiness(is_ready_for_transactions=self.ready, status_message=self.readiness_message)

    def start_transaction(
        self,
        kind: TransactionKind,
        amount: int,
        breakdown: PaymentBreakdown,
        currency: str,
        idempotency_key: str,
        host: TerminalHost,
    ) -> AsyncIterator[TransactionResponseEvent]:
        self.calls.append(("start_transaction", kind, amount, breakdown, currency, idempotency_key))
        if self.start_failure is not None:
            raise self.start_failure
        if not self.ready:
            raise GatewayError("Gateway not ready", category="Readiness", message=self.readiness_message)
        if self._scripts:
            return self._replay(self._scripts.popleft())
        return self._run(kind, amount, breakdown, currency, idempotency_key, host)

    async def _emit(self, event: TransactionResponseEvent) -> TransactionResponseEvent:
        await asyncio.sleep(self.event_delay)
        return event

    async def _replay(self, events: list[TransactionResponseEvent]) -> AsyncIterator[TransactionResponseEvent]:
        for event in events:
            yield await self._emit(event)

    async def _run(
        self,
        kind: TransactionKind,
        amount: int,
        breakdown: PaymentBreakdown,
        currency: str,
        idempotency_key: str,
        host: TerminalHost,
    ) -> AsyncIterator[TransactionResponseEvent]:
        existing = self._store.get_by_idempotency_key(idempotency_key)
        if existing is not None:
            logger.debug("Replaying transaction %s for idempotency key %s", existing.transaction_id, idempotency_key)
            yield await self._emit(_outcome(existing))
            return

        for reader_status in READER_PROGRESS:
            yield await self._emit(TransactionResponseEvent(
                action_status=ActionStatus.IN_PROGRESS,
                reader_status=reader_status,
            ))

        record = self._new_record(kind, amount, breakdown, currency, idempotency_key, host)

        if amount > self.decline_above_cents:
            record = record.model_copy(update={"status": TransactionStatus.DECLINED, "status_reason": "Insufficient funds"})
        elif (
            self.require_surcharge_confirmation
            and breakdown.surcharge_amount > 0
            and not breakdown.surcharge.bypass
        ):
            record = record.model_copy(update={"status": TransactionStatus.SURCHARGE_PENDING})
        else:
            record = record.model_copy(update={"status": _approved_status(kind), "approval_code": _approval_code()})

        self._store.save_transaction(record)
        yield await self._emit(_outcome(record))

    def _new_record(
        self,
        kind: TransactionKind,
        amount: int,
        breakdown: PaymentBreakdown,
        currency: str,
        idempotency_key: str,
        host: TerminalHost,
    ) -> TransactionRecord:
        return TransactionRecord(
            transaction_id=f"TXN-{uuid.uuid4().hex[:10].upper()}",
            kind=kind,
            status=TransactionStatus.PENDING,
            amount=amount,
            subtotal=breakdown.subtotal,
            tip_amount=breakdown.tip_amount,
            tip_type=breakdown.tip_type,
            tax_amount=breakdown.tax_amount,
            tax_rate=breakdown.tax_rate,
            surcharge_amount=breakdown.surcharge_amount,
            currency=currency,
            card_brand="VISA",
            card_last4="4242",
            merchant_id=self.session.merchant_id,
            location_id=self.session.location_id,
            terminal_id=host.terminal_id,
            idempotency_key=idempotency_key,
            created_at=datetime.now(timezone.utc),
        )

    async def confirm_surcharge(
        self,
        transaction_id: str,
        confirm: bool,
        breakdown: Optional[PaymentBreakdown] = None,
        amount: Optional[int] = None,
    ) -> TransactionRecord:
        self.calls.append(("confirm_surcharge", transaction_id, confirm, breakdown, amount))
        if self.confirm_failure is not None:
            raise self.confirm_failure

        record = self._require(transaction_id)
        if record.status is not TransactionStatus.SURCHARGE_PENDING:
            raise GatewayError("Transaction is not awaiting surcharge confirmation", category="InvalidState")

        update: dict = {}
        if breakdown is not None:
            update.update(
                surcharge_amount=breakdown.surcharge_amount,
                amount=amount if amount is not None else breakdown.total,
            )
        if confirm:
            update.update(status=_approved_status(record.kind), approval_code=_approval_code())
        else:
            update.update(status=TransactionStatus.CANCELLED, status_reason="Surcharge declined")

        updated = record.model_copy(update=update)
        self._store.save_transaction(updated)
        return updated

    async def get_transaction(self, transaction_id: str) -> Optional[TransactionRecord]:
        return self._store.get_transaction(transaction_id)

    async def list_transactions(self) -> list[TransactionRecord]:
        return self._store.list_transactions()

    async def run_operation(
        self,
        operation: PaymentOperation,
        transaction_id: str,
        amount: Optional[int] = None,
        tip_mode: Optional[AmountMode] = None,
        tip_percentage: Optional[Decimal] = None,
    ) -> TransactionRecord:
        self.calls.append(("run_operation", operation, transaction_id, amount))
        record = self._require(transaction_id)

        if operation is PaymentOperation.INCREMENTAL_AUTH:
            _require_status(record, {TransactionStatus.AUTHORIZED}, operation)
            if not amount:
                raise GatewayError("Incremental amount is required", category="InvalidAmount")
            updated = record.model_copy(update={"amount": record.amount + amount})

        elif operation is PaymentOperation.CAPTURE:
            _require_status(record, {TransactionStatus.AUTHORIZED}, operation)
            captured = record.amount if amount is None else amount
            if captured > record.amount:
                raise GatewayError("Capture exceeds authorized amount", category="InvalidAmount")
            updated = record.model_copy(update={"status": TransactionStatus.CAPTURED, "amount": captured})

        elif operation is PaymentOperation.REVERSE:
            _require_status(record, {TransactionStatus.AUTHORIZED, TransactionStatus.CAPTURED}, operation)
            reversed_amount = record.amount - record.reversed if amount is None else amount
            if record.reversed + reversed_amount > record.amount:
                raise GatewayError("Reversal exceeds transaction amount", category="InvalidAmount")
            total_reversed = record.reversed + reversed_amount
            update = {"reversed": total_reversed}
            if total_reversed == record.amount:
                update["status"] = TransactionStatus.REVERSED
            updated = record.model_copy(update=update)

        elif operation is PaymentOperation.ADJUST:
            _require_status(record, {TransactionStatus.AUTHORIZED, TransactionStatus.CAPTURED}, operation)
            if tip_mode is AmountMode.PERCENTAGE:
                if tip_percentage is None:
                    raise GatewayError("Tip percentage is required", category="InvalidAmount")
                tip = int((Decimal(record.subtotal) * tip_percentage / Decimal("100")).to_integral_value(rounding=ROUND_DOWN))
            else:
                if amount is None:
                    raise GatewayError("Tip amount is required", category="InvalidAmount")
                tip = amount
            mode = tip_mode or AmountMode.FIXED
            updated = record.model_copy(update={
                "tip_amount": tip,
                "tip_type": mode.label,
                "amount": record.subtotal + tip + record.tax_amount + record.surcharge_amount,
            })

        elif operation is PaymentOperation.REFUND:
            if not record.is_refundable:
                raise GatewayError(f"Transaction {transaction_id} is not refundable", category="InvalidState")
            refundable = record.amount - record.refunded
            refund = refundable if amount is None else amount
            if refund > refundable:
                raise GatewayError("Refund exceeds remaining balance", category="InvalidAmount")
            total_refunded = record.refunded + refund
            update = {"refunded": total_refunded}
            if total_refunded == record.amount:
                update["status"] = TransactionStatus.REFUNDED
            updated = record.model_copy(update=update)

        else:  # pragma: no cover
            raise GatewayError(f"Unsupported operation {operation.value}", category="Unsupported")

        self._store.save_transaction(updated)
        return updated

    async def send_receipt(self, transaction_id: str, email: Optional[str], phone: Optional[str]) -> None:
        self._require(transaction_id)
        for destination in (email, phone):
            if destination:
                self._store.record_receipt(transaction_id, destination)

    def _require(self, transaction_id: str) -> TransactionRecord:
        record = self._store.get_transaction(transaction_id)
        if record is None:
            raise GatewayError(f"Transaction {transaction_id} not found", category="NotFound")
        return record


def _outcome(record: TransactionRecord) -> TransactionResponseEvent:
    """The last event of an attempt, derived from the stored record so replays match the original outcome."""
    if record.status is TransactionStatus.DECLINED:
        return TransactionResponseEvent(
            action_status=ActionStatus.FAILURE,
            reader_status="processing",
            display_message="Card declined by issuer",
            status_code=DECLINE_STATUS_CODE,
            final_status=FinalStatusValue(status=FinalStatus.DECLINE),
            transaction=record,
            transaction_id=record.transaction_id,
        )
    if record.status is TransactionStatus.SURCHARGE_PENDING:
        return TransactionResponseEvent(
            action_status=ActionStatus.COMPLETE,
            reader_status="surchargePending",
            transaction=record,
            transaction_id=record.transaction_id,
        )
    final_status = FinalStatus.ABORT if record.status is TransactionStatus.CANCELLED else FinalStatus.APPROVE
    return TransactionResponseEvent(
        action_status=ActionStatus.COMPLETE,
        reader_status="complete",
        final_status=FinalStatusValue(status=final_status),
        transaction=record,
        transaction_id=record.transaction_id,
    )


def _approved_status(kind: TransactionKind) -> TransactionStatus:
    return TransactionStatus.AUTHORIZED if kind is TransactionKind.PREAUTH else TransactionStatus.CAPTURED


def _approval_code() -> str:
    return uuid.uuid4().hex[:6].upper()


def _require_status(record: TransactionRecord, allowed: set, operation: PaymentOperation) -> None:
    if record.status not in allowed:
        raise GatewayError(
            f"{operation.display_name} is not allowed for a {record.status.value} transaction",
            category="InvalidState",
        )
