"""
Transaction flow controller — one per terminal.

Holds the checkout form and the flow state of the current attempt, turns
operator intents into state updates, launches preauth/sale attempts on the
gateway and folds the resulting event stream into state through the
reconciler. Errors never escape: they land in `flow.error_message` and a
ShowError effect, leaving the controller ready for a retry.

Flow: readiness → host → amount → compute breakdown → gateway → consume events
"""
import asyncio
import logging
import uuid
from typing import AsyncIterator, Callable, Optional

from app.engine.calculator import InvalidAmount, compute_breakdown, compute_override
from app.engine.reconciler import apply_event, format_exception_message
from app.gateway.base import GatewayError, PaymentGateway, TerminalHost
from app.models.flow import (
    AmountChanged,
    CheckoutForm,
    DismissResult,
    Effect,
    FlowPhase,
    FormIntent,
    ShowError,
    SurchargeChanged,
    SurchargeConfirmationRequired,
    SurchargeModeToggled,
    SurchargeOverrideChanged,
    SurchargeOverrideModeToggled,
    SurchargeStateChanged,
    TaxChanged,
    TaxModeToggled,
    TerminalState,
    TipChanged,
    TipModeToggled,
    TransactionFinished,
    TransactionFlowState,
)
from app.models.amounts import AmountMode
from app.models.transaction import TransactionKind, TransactionResponseEvent
from app.services.state_store import EffectQueue, StateStore

logger = logging.getLogger(__name__)

MISSING_AMOUNT_MESSAGE = "Please enter an amount"
MISSING_HOST_MESSAGE = "No card reader is available to start the transaction"
INVALID_AMOUNT_MESSAGE = "Invalid amount format"


class TransactionFlowController:

    def __init__(self, gateway: PaymentGateway, terminal_id: str, currency: str = "USD"):
        self._gateway = gateway
        self.terminal_id = terminal_id
        self.currency = currency
        self._store: StateStore[TerminalState] = StateStore(TerminalState())
        self.effects: EffectQueue[Effect] = EffectQueue()
        self._task: Optional[asyncio.Task] = None

    # ── State access ────────────────────────────────────────────────────────

    def get_state(self) -> TerminalState:
        return self._store.get_state()

    def subscribe(self, listener: Callable[[TerminalState], None]) -> Callable[[], None]:
        return self._store.subscribe(listener)

    @property
    def flow(self) -> TransactionFlowState:
        return self._store.get_state().flow

    def _update_flow(self, **changes) -> TerminalState:
        return self._store.update(
            lambda s: s.model_copy(update={"flow": s.flow.model_copy(update=changes)})
        )

    def _update_form(self, clear_error: bool = True, **changes) -> TerminalState:
        def apply(state: TerminalState) -> TerminalState:
            update = {"form": state.form.model_copy(update=changes)}
            if clear_error:
                update["flow"] = state.flow.model_copy(update={"error_message": None})
            return state.model_copy(update=update)
        return self._store.update(apply)

    def _fail(self, message: str, **changes) -> TerminalState:
        self.effects.emit(ShowError(message=message))
        return self._update_flow(error_message=message, **changes)

    def _update_attempt(
        self, attempt_id: Optional[str], fn: Callable[[TerminalState], TerminalState]
    ) -> Optional[TerminalState]:
        """Apply fn only while attempt_id is still the current attempt. Returns None when it is stale."""
        applied = False

        def apply(state: TerminalState) -> TerminalState:
            nonlocal applied
            if state.flow.attempt_id != attempt_id:
                return state
            applied = True
            return fn(state)

        state = self._store.update(apply)
        return state if applied else None

    def _fail_attempt(self, attempt_id: Optional[str], message: str, **changes) -> TerminalState:
        state = self._update_attempt(attempt_id, lambda s: s.model_copy(update={
            "flow": s.flow.model_copy(update={"error_message": message, **changes}),
        }))
        if state is None:
            logger.debug("Dropping error for stale attempt %s: %s", attempt_id, message)
            return self.get_state()
        self.effects.emit(ShowError(message=message))
        return state

    # ── Form intents ────────────────────────────────────────────────────────

    def load_form(self, form: CheckoutForm) -> TerminalState:
        """Replace the whole form, e.g. when a front end submits every field at once."""
        return self._store.update(lambda s: s.model_copy(update={
            "form": form,
            "flow": s.flow.model_copy(update={"error_message": None}),
        }))

    def dispatch(self, intent: FormIntent) -> TerminalState:
        form = self.get_state().form

        if isinstance(intent, AmountChanged):
            return self._update_form(amount=intent.value)
        if isinstance(intent, TipChanged):
            field = "tip_percentage" if form.tip_mode is AmountMode.PERCENTAGE else "tip_fixed"
            return self._update_form(**{field: intent.value})
        if isinstance(intent, TipModeToggled):
            return self._update_form(tip_mode=form.tip_mode.toggled())
        if isinstance(intent, TaxChanged):
            field = "tax_percentage" if form.tax_mode is AmountMode.PERCENTAGE else "tax_fixed"
            return self._update_form(**{field: intent.value})
        if isinstance(intent, TaxModeToggled):
            return self._update_form(tax_mode=form.tax_mode.toggled())
        if isinstance(intent, SurchargeStateChanged):
            return self._update_form(surcharge_state=intent.state)
        if isinstance(intent, SurchargeChanged):
            field = "surcharge_percentage" if form.surcharge_mode is AmountMode.PERCENTAGE else "surcharge_fixed"
            return self._update_form(**{field: intent.value})
        if isinstance(intent, SurchargeModeToggled):
            return self._update_form(surcharge_mode=form.surcharge_mode.toggled())
        if isinstance(intent, SurchargeOverrideChanged):
            return self._update_form(clear_error=False, surcharge_override=intent.value)
        if isinstance(intent, SurchargeOverrideModeToggled):
            return self._update_form(clear_error=False, surcharge_override_mode=form.surcharge_override_mode.toggled())
        if isinstance(intent, DismissResult):
            return self.dismiss()
        raise TypeError(f"Unsupported intent {type(intent).__name__}")

    # ── Transaction attempt ─────────────────────────────────────────────────

    async def start_transaction(self, kind: TransactionKind, host: Optional[TerminalHost]) -> TerminalState:
        """
        Start a preauth or sale for the amounts currently in the form.

        Rejected (no-op) while another attempt is processing. Returns as soon
        as the gateway accepted the attempt; events are consumed in the
        background. Use wait_idle() to await the outcome.
        """
        readiness = self._gateway.readiness()
        if not readiness.is_ready_for_transactions:
            return self._fail(f"Cannot start transaction: {readiness.status_message}")

        if host is None:
            return self._fail(MISSING_HOST_MESSAGE)

        form = self.get_state().form
        if not form.amount.strip():
            return self._fail(MISSING_AMOUNT_MESSAGE)

        if self.flow.is_processing:
            logger.debug("Terminal %s is already processing; start ignored", self.terminal_id)
            return self.get_state()

        attempt_id = str(uuid.uuid4())
        self._store.update(lambda s: s.model_copy(update={
            "flow": TransactionFlowState(phase=FlowPhase.IN_PROGRESS, attempt_id=attempt_id, is_processing=True),
        }))

        try:
            breakdown = compute_breakdown(
                form.amount.strip(), form.tip, form.tax, form.surcharge_state, form.surcharge
            )
        except InvalidAmount:
            return self._fail(INVALID_AMOUNT_MESSAGE, phase=FlowPhase.IDLE, is_processing=False)

        idempotency_key = str(uuid.uuid4())
        logger.debug("Starting %s transaction with idempotency key: %s", kind.value.lower(), idempotency_key)
        logger.debug("Total amount: %s cents, breakdown: %s", breakdown.total, breakdown)

        try:
            events = self._gateway.start_transaction(
                kind=kind,
                amount=breakdown.total,
                breakdown=breakdown,
                currency=self.currency,
                idempotency_key=idempotency_key,
                host=host,
            )
        except Exception as exc:
            logger.exception("%s transaction failed to start", kind.value.title())
            message = format_exception_message(kind, exc)
            return self._fail(message, phase=FlowPhase.FAILED, is_processing=False, status_messages=[message])

        self._task = asyncio.create_task(self._consume(attempt_id, kind, events))
        return self.get_state()

    async def _consume(self, attempt_id: str, kind: TransactionKind, events: AsyncIterator[TransactionResponseEvent]) -> None:
        try:
            async for event in events:
                if self.flow.attempt_id != attempt_id:
                    logger.debug("Dropping event for stale attempt %s", attempt_id)
                    break
                logger.debug(
                    "Transaction response: readerStatus=%s, action=%s", event.reader_status, event.action_status.value
                )
                self._apply(attempt_id, event)
        except asyncio.CancelledError:
            logger.debug("Event stream for attempt %s cancelled", attempt_id)
            raise
        except Exception as exc:
            logger.exception("Transaction event stream failed")
            message = format_exception_message(kind, exc)
            self._fail_attempt(
                attempt_id, message, phase=FlowPhase.FAILED, is_processing=False, status_messages=[message]
            )
        finally:
            aclose = getattr(events, "aclose", None)
            if aclose is not None:
                await aclose()

    def _apply(self, attempt_id: str, event: TransactionResponseEvent) -> None:
        previous = self.flow.phase
        state = self._update_attempt(
            attempt_id, lambda s: s.model_copy(update={"flow": apply_event(s.flow, event)})
        )
        if state is None:
            return
        flow = state.flow
        if flow.phase is previous:
            return
        if flow.phase is FlowPhase.SURCHARGE_PENDING:
            logger.debug("Transaction requires surcharge confirmation")
            self.effects.emit(SurchargeConfirmationRequired(transaction_id=flow.transaction_id))
        elif flow.is_terminal:
            self.effects.emit(TransactionFinished(
                phase=flow.phase, transaction_id=flow.transaction_id, final_status=flow.final_status
            ))

    # ── Surcharge confirmation ──────────────────────────────────────────────

    async def confirm_surcharge(self, confirm: bool) -> TerminalState:
        """
        Accept or decline the pending surcharge, applying the override typed into the form, if any.

        Only acts while the attempt is SURCHARGE_PENDING and no other confirmation
        is in flight. The gateway's answer is dropped if the attempt was dismissed
        or replaced while waiting for it.
        """
        state = self.get_state()
        flow = state.flow
        if (
            flow.phase is not FlowPhase.SURCHARGE_PENDING
            or not flow.show_surcharge_confirmation
            or flow.is_confirming_surcharge
            or flow.transaction_id is None
            or flow.transaction is None
        ):
            logger.debug("Terminal %s has no surcharge awaiting confirmation", self.terminal_id)
            return state

        attempt_id = flow.attempt_id
        self._update_flow(is_confirming_surcharge=True, error_message=None)

        try:
            breakdown = compute_override(
                flow.transaction, state.form.surcharge_override, state.form.surcharge_override_mode
            )
        except InvalidAmount as exc:
            return self._fail(exc.message, is_confirming_surcharge=False)

        amount = breakdown.total if breakdown is not None else None
        try:
            updated = await self._gateway.confirm_surcharge(
                transaction_id=flow.transaction_id,
                confirm=confirm,
                breakdown=breakdown,
                amount=amount,
            )
        except GatewayError as exc:
            logger.error("Surcharge confirmation failed: %s", exc)
            return self._fail_attempt(
                attempt_id, str(exc) or "Failed to confirm surcharge", is_confirming_surcharge=False
            )
        except Exception as exc:
            logger.exception("Error confirming surcharge")
            return self._fail_attempt(
                attempt_id, str(exc) or "Error confirming surcharge", is_confirming_surcharge=False
            )

        final_status = "Surcharge Accepted" if confirm else "Surcharge Declined"
        new_state = self._update_attempt(attempt_id, lambda s: s.model_copy(update={
            "form": s.form.model_copy(update={"surcharge_override": ""}),
            "flow": s.flow.model_copy(update={
                "phase": FlowPhase.COMPLETE,
                "transaction": updated,
                "show_surcharge_confirmation": False,
                "is_confirming_surcharge": False,
                "final_status": final_status,
            }),
        }))
        if new_state is None:
            logger.debug("Dropping surcharge confirmation for stale attempt %s", attempt_id)
            return self.get_state()

        logger.debug("Surcharge confirmation succeeded: %s", confirm)
        self.effects.emit(TransactionFinished(
            phase=FlowPhase.COMPLETE, transaction_id=updated.transaction_id, final_status=final_status
        ))
        return new_state

    # ── Reset ───────────────────────────────────────────────────────────────

    def dismiss(self) -> TerminalState:
        """Reset the attempt. The running event stream is cancelled; late events are dropped."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        return self._store.update(lambda s: s.model_copy(update={"flow": TransactionFlowState()}))

    async def wait_idle(self) -> TerminalState:
        """Wait until the current event stream has been fully consumed."""
        task = self._task
        if task is not None:
            await asyncio.wait({task})
        return self.get_state()


class FlowRegistry:
    """One controller per configured terminal, plus the reader host attached to it."""

    def __init__(self, gateway: PaymentGateway, terminal_ids: list[str], currency: str = "USD"):
        self._gateway = gateway
        self._terminal_ids = list(terminal_ids)
        self._currency = currency
        self.reset()

    def reset(self) -> None:
        self._controllers = {
            terminal_id: TransactionFlowController(self._gateway, terminal_id, self._currency)
            for terminal_id in self._terminal_ids
        }
        self._hosts: dict[str, TerminalHost] = {
            terminal_id: TerminalHost(terminal_id=terminal_id) for terminal_id in self._terminal_ids
        }

    def controller(self, terminal_id: str) -> Optional[TransactionFlowController]:
        return self._controllers.get(terminal_id)

    def host(self, terminal_id: str) -> Optional[TerminalHost]:
        return self._hosts.get(terminal_id)

    def attach_host(self, host: TerminalHost) -> None:
        self._hosts[host.terminal_id] = host

    def detach_host(self, terminal_id: str) -> None:
        self._hosts.pop(terminal_id, None)

    def terminal_ids(self) -> list[str]:
        return list(self._terminal_ids)
