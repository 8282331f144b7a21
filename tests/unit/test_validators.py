"""Unit tests for app/validators/receipt_validator.py."""
import pytest
from app.models.operations import OperationRequest, PaymentOperation, ReceiptRequest
from app.validators.receipt_validator import (
    ValidationError,
    is_valid_email,
    is_valid_us_phone,
    validate_operation_request,
    validate_receipt_request,
    validate_transaction_exists,
)


@pytest.mark.parametrize("value", ["jane@example.com", "a.b+c@mail.example.org", "x_y-z@host.io"])
def test_valid_emails(value):
    assert is_valid_email(value)


@pytest.mark.parametrize("value", [None, "", "   ", "jane", "jane@", "@example.com", "jane@example", "jane@example.c"])
def test_invalid_emails(value):
    assert not is_valid_email(value)


@pytest.mark.parametrize("value", ["5551234567", "(555) 123-4567", "555.123.4567", "+1 555 123 4567", "15551234567"])
def test_valid_us_phones(value):
    assert is_valid_us_phone(value)


@pytest.mark.parametrize("value", [None, "", "555-1234", "25551234567", "555123456789"])
def test_invalid_us_phones(value):
    assert not is_valid_us_phone(value)


def test_transaction_not_found():
    with pytest.raises(ValidationError) as exc_info:
        validate_transaction_exists("TXN-NONEXISTENT")
    assert exc_info.value.code == "TRANSACTION_NOT_FOUND"
    assert exc_info.value.http_status == 404


def test_receipt_requires_a_destination():
    with pytest.raises(ValidationError) as exc_info:
        validate_receipt_request("TXN-SALE-001", ReceiptRequest())
    assert exc_info.value.code == "MISSING_RECEIPT_DESTINATION"
    assert exc_info.value.http_status == 422


def test_receipt_rejects_bad_email():
    with pytest.raises(ValidationError) as exc_info:
        validate_receipt_request("TXN-SALE-001", ReceiptRequest(email="not-an-email"))
    assert exc_info.value.code == "INVALID_EMAIL"
    assert exc_info.value.details == {"email": "not-an-email"}


def test_receipt_rejects_bad_phone():
    with pytest.raises(ValidationError) as exc_info:
        validate_receipt_request("TXN-SALE-001", ReceiptRequest(phone="12345"))
    assert exc_info.value.code == "INVALID_PHONE"


def test_receipt_accepts_both_destinations():
    txn = validate_receipt_request(
        "TXN-SALE-001", ReceiptRequest(email="jane@example.com", phone="555-123-4567")
    )
    assert txn.transaction_id == "TXN-SALE-001"


def test_receipt_for_unknown_transaction():
    with pytest.raises(ValidationError) as exc_info:
        validate_receipt_request("TXN-NONEXISTENT", ReceiptRequest(email="jane@example.com"))
    assert exc_info.value.code == "TRANSACTION_NOT_FOUND"


def test_incremental_auth_requires_amount():
    with pytest.raises(ValidationError) as exc_info:
        validate_operation_request("TXN-AUTH-001", OperationRequest(operation=PaymentOperation.INCREMENTAL_AUTH))
    assert exc_info.value.code == "MISSING_AMOUNT"


def test_incremental_auth_rejects_zero():
    with pytest.raises(ValidationError) as exc_info:
        validate_operation_request(
            "TXN-AUTH-001", OperationRequest(operation=PaymentOperation.INCREMENTAL_AUTH, amount=0)
        )
    assert exc_info.value.code == "MISSING_AMOUNT"


def test_adjust_requires_amount_or_percentage():
    with pytest.raises(ValidationError) as exc_info:
        validate_operation_request("TXN-SALE-001", OperationRequest(operation=PaymentOperation.ADJUST))
    assert exc_info.value.code == "MISSING_AMOUNT"


def test_adjust_with_percentage_passes():
    request = OperationRequest(operation=PaymentOperation.ADJUST, tip_percentage="20")
    assert validate_operation_request("TXN-SALE-001", request).transaction_id == "TXN-SALE-001"


def test_refund_blocked_on_refunded_transaction():
    with pytest.raises(ValidationError) as exc_info:
        validate_operation_request("TXN-REFUND-001", OperationRequest(operation=PaymentOperation.REFUND))
    assert exc_info.value.code == "NOT_REFUNDABLE"
    assert "REFUNDED" in exc_info.value.message
    assert exc_info.value.details["status"] == "REFUNDED"


def test_refund_blocked_on_declined_transaction():
    with pytest.raises(ValidationError) as exc_info:
        validate_operation_request("TXN-DECLINE-001", OperationRequest(operation=PaymentOperation.REFUND))
    assert exc_info.value.code == "NOT_REFUNDABLE"


def test_capture_passes_rule_checks():
    request = OperationRequest(operation=PaymentOperation.CAPTURE)
    assert validate_operation_request("TXN-AUTH-001", request).transaction_id == "TXN-AUTH-001"
