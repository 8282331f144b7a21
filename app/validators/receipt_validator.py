from __future__ import annotations

"""
Validation for receipt delivery and post-transaction operations.

Validators read from the gateway-backed store but never write to it.
"""
import re
from typing import Optional
from app.models.operations import OperationRequest, PaymentOperation, ReceiptRequest
from app.models.transaction import TransactionRecord
from app.repository.store import store

_EMAIL_RE = re.compile(r"^[A-Za-z0-9+_.-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")
_NON_DIGITS_RE = re.compile(r"[^\d]")


class ValidationError(Exception):
    """Raised when a business rule validation fails."""

    def __init__(self, code: str, message: str, details: dict | None = None, http_status: int = 422):
        self.code = code
        self.message = message
        self.details = details or {}
        self.http_status = http_status
        super().__init__(message)


def is_valid_email(value: Optional[str]) -> bool:
    return bool(value and value.strip() and _EMAIL_RE.match(value))


def is_valid_us_phone(value: Optional[str]) -> bool:
    """10 digits, or 11 digits starting with the US country code, ignoring punctuation."""
    if not value:
        return False
    digits = _NON_DIGITS_RE.sub("", value)
    return len(digits) == 10 or (len(digits) == 11 and digits.startswith("1"))


def validate_transaction_exists(transaction_id: str) -> TransactionRecord:
    transaction = store.get_transaction(transaction_id)
    if transaction is None:
        raise ValidationError(
            code="TRANSACTION_NOT_FOUND",
            message=f"Transaction {transaction_id} not found",
            http_status=404,
        )
    return transaction


def validate_receipt_request(transaction_id: str, request: ReceiptRequest) -> TransactionRecord:
    """
    Check that a receipt can be sent.

    Exactly one destination is normally given; both are accepted when valid.

    Raises:
        ValidationError: On the first failing rule.
    """
    transaction = validate_transaction_exists(transaction_id)

    if not request.email and not request.phone:
        raise ValidationError(
            code="MISSING_RECEIPT_DESTINATION",
            message="Provide an email address or a phone number",
        )
    if request.email and not is_valid_email(request.email):
        raise ValidationError(
            code="INVALID_EMAIL",
            message="Email address is not valid",
            details={"email": request.email},
        )
    if request.phone and not is_valid_us_phone(request.phone):
        raise ValidationError(
            code="INVALID_PHONE",
            message="Phone number must be a 10-digit US number",
            details={"phone": request.phone},
        )
    return transaction


def validate_operation_request(transaction_id: str, request: OperationRequest) -> TransactionRecord:
    """Rule checks that do not need the gateway: the transaction exists and required amounts are present."""
    transaction = validate_transaction_exists(transaction_id)

    if request.operation is PaymentOperation.INCREMENTAL_AUTH and not request.amount:
        raise ValidationError(
            code="MISSING_AMOUNT",
            message="Incremental auth requires a positive amount",
        )
    if request.operation is PaymentOperation.ADJUST and request.amount is None and request.tip_percentage is None:
        raise ValidationError(
            code="MISSING_AMOUNT",
            message="Tip adjustment requires an amount or a tip percentage",
        )
    if request.operation is PaymentOperation.REFUND and not transaction.is_refundable:
        raise ValidationError(
            code="NOT_REFUNDABLE",
            message=f"Transaction {transaction_id} cannot be refunded: status is {transaction.status.value}",
            details={"status": transaction.status.value, "refunded": transaction.refunded},
        )
    return transaction
