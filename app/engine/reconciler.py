"""
Transaction response reconciler.

Folds the gateway's event stream for one attempt into TransactionFlowState.
Pure: every function returns a new state and never touches the gateway.

    IDLE → IN_PROGRESS → COMPLETE | FAILED
                       ↘ SURCHARGE_PENDING (COMPLETE event carrying a surcharge-pending transaction)
"""
from typing import Optional

from app.models.flow import FlowPhase, TransactionFlowState
from app.models.transaction import (
    READER_STATUS_UNKNOWN,
    NON_TERMINAL_FAILURE_CODE,
    ActionStatus,
    FinalStatus,
    FinalStatusValue,
    TransactionKind,
    TransactionResponseEvent,
    TransactionStatus,
)
from app.gateway.base import GatewayError

GENERIC_FAILURE_MESSAGE = "The transaction could not be completed. Please try again."
GENERIC_ERROR_MESSAGE = "Something went wrong while starting the transaction. Please try again."

FINAL_STATUS_LABELS = {
    FinalStatus.APPROVE: "Approved",
    FinalStatus.ABORT: "Aborted",
    FinalStatus.DECLINE: "Declined",
    FinalStatus.FAILURE: "Failed",
    FinalStatus.ALT_SERVICE: "Alternative Service Required",
}


def resolve_final_status_label(final_status: Optional[FinalStatusValue]) -> Optional[str]:
    """Display label for a final status. UNKNOWN passes its raw text through."""
    if final_status is None:
        return None
    if final_status.status is FinalStatus.UNKNOWN:
        return final_status.raw
    return FINAL_STATUS_LABELS[final_status.status]


def format_reader_status(reader_status: Optional[str]) -> str:
    return reader_status or READER_STATUS_UNKNOWN


def build_failure_message(event: TransactionResponseEvent) -> str:
    """
    Compose the error text for a terminal FAILURE event.

    Sections appear in order, each only when present: header, display message,
    status code, final status, reader status. With no display message, status
    code or final status, a generic explanation is appended instead.
    """
    parts = ["Transaction Failed"]
    if event.display_message is not None:
        parts.append(f"\n\n{event.display_message}")
    if event.status_code is not None:
        parts.append(f"\n\nStatus Code: {event.status_code}")
    if event.final_status is not None:
        parts.append(f"\nFinal Status: {resolve_final_status_label(event.final_status)}")
    if format_reader_status(event.reader_status) != READER_STATUS_UNKNOWN:
        parts.append(f"\nReader Status: {format_reader_status(event.reader_status)}")
    if event.display_message is None and event.status_code is None and event.final_status is None:
        parts.append(f"\n\n{GENERIC_FAILURE_MESSAGE}")
    return "".join(parts)


def format_exception_message(kind: TransactionKind, exc: BaseException) -> str:
    """Compose the error text for an exception raised by the initial gateway call."""
    header = "Preauth Failed" if kind is TransactionKind.PREAUTH else "Transaction Failed"
    message = str(exc) or None
    parts = [header]
    if message:
        parts.append(f"\n\n{message}")
    parts.append(f"\n\nError Type: {type(exc).__name__}")
    if isinstance(exc, GatewayError):
        parts.append(f"\nError: {exc.short_message}")
        if exc.category:
            parts.append(f"\nCategory: {exc.category}")
    if not message:
        parts.append(f"\n\n{GENERIC_ERROR_MESSAGE}")
    return "".join(parts)


def apply_event(state: TransactionFlowState, event: TransactionResponseEvent) -> TransactionFlowState:
    """
    Apply one gateway event to the flow state.

    Args:
        state: The current state of the attempt.
        event: The next event, in arrival order.

    Returns:
        The new state. The input state is never mutated.
    """
    status_message = format_reader_status(event.reader_status)

    if event.action_status is ActionStatus.IN_PROGRESS:
        return state.model_copy(update={
            "phase": FlowPhase.IN_PROGRESS,
            "status_messages": [status_message],
            "error_message": None,
        })

    if event.action_status is ActionStatus.FAILURE:
        if event.status_code == NON_TERMINAL_FAILURE_CODE:
            return state.model_copy(update={"status_messages": [status_message]})

        failure_message = build_failure_message(event)
        return state.model_copy(update={
            "phase": FlowPhase.FAILED,
            "status_messages": [failure_message],
            "error_message": failure_message,
            "is_processing": False,
        })

    if event.action_status is ActionStatus.COMPLETE:
        transaction = event.transaction
        if transaction is not None and transaction.status is TransactionStatus.SURCHARGE_PENDING:
            return state.model_copy(update={
                "phase": FlowPhase.SURCHARGE_PENDING,
                "status_messages": [status_message],
                "transaction_id": transaction.transaction_id,
                "transaction": transaction,
                "show_surcharge_confirmation": True,
                "error_message": None,
                "is_processing": False,
            })

        return state.model_copy(update={
            "phase": FlowPhase.COMPLETE,
            "status_messages": [status_message],
            "final_status": resolve_final_status_label(event.final_status),
            "transaction_id": transaction.transaction_id if transaction is not None else event.transaction_id,
            "transaction": transaction,
            "error_message": None,
            "is_processing": False,
        })

    return state.model_copy(update={"status_messages": [status_message]})
