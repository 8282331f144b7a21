from .amounts import AmountMode, SurchargeState, AmountInput, Surcharge, PaymentBreakdown
from .transaction import (
    TransactionKind, TransactionStatus, ActionStatus, FinalStatus, FinalStatusValue,
    TransactionRecord, TransactionResponseEvent,
)
from .flow import FlowPhase, CheckoutForm, TransactionFlowState, TerminalState
from .operations import PaymentOperation, OperationRequest, OperationResult, ReceiptRequest

__all__ = [
    "AmountMode", "SurchargeState", "AmountInput", "Surcharge", "PaymentBreakdown",
    "TransactionKind", "TransactionStatus", "ActionStatus", "FinalStatus", "FinalStatusValue",
    "TransactionRecord", "TransactionResponseEvent",
    "FlowPhase", "CheckoutForm", "TransactionFlowState", "TerminalState",
    "PaymentOperation", "OperationRequest", "OperationResult", "ReceiptRequest",
]
