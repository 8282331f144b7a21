"""
Transaction service — history, details, post-transaction operations and receipts.

Flow: validate → gateway call → log
"""
import logging
from typing import Optional

from app.gateway.base import GatewayError, PaymentGateway
from app.models.operations import OperationRequest, OperationResult, ReceiptRequest
from app.models.transaction import TransactionRecord
from app.validators.receipt_validator import (
    ValidationError,
    validate_operation_request,
    validate_receipt_request,
)

logger = logging.getLogger(__name__)


async def list_transactions(gateway: PaymentGateway) -> list[TransactionRecord]:
    """All transactions, newest first."""
    return await gateway.list_transactions()


async def get_transaction(gateway: PaymentGateway, transaction_id: str) -> Optional[TransactionRecord]:
    return await gateway.get_transaction(transaction_id)


async def process_operation(
    gateway: PaymentGateway,
    transaction_id: str,
    request: OperationRequest,
) -> tuple[OperationResult, TransactionRecord]:
    """
    Run incremental auth, capture, reverse, tip adjust or refund on a transaction.

    Returns:
        The operation result and the updated transaction.

    Raises:
        ValidationError: If the request fails a rule check or the gateway rejects it.
    """
    validate_operation_request(transaction_id, request)

    try:
        updated = await gateway.run_operation(
            request.operation,
            transaction_id,
            amount=request.amount,
            tip_mode=request.tip_mode,
            tip_percentage=request.tip_percentage,
        )
    except GatewayError as exc:
        logger.error("%s failed for %s: %s", request.operation.display_name, transaction_id, exc)
        raise ValidationError(
            code="OPERATION_FAILED",
            message=str(exc),
            details={"operation": request.operation.value, "category": exc.category},
        ) from exc

    logger.info("%s succeeded for %s", request.operation.display_name, transaction_id)
    result = OperationResult(
        success=True,
        message=f"{request.operation.display_name} successful",
        transaction_id=updated.transaction_id,
    )
    return result, updated


async def send_receipt(gateway: PaymentGateway, transaction_id: str, request: ReceiptRequest) -> None:
    """
    Send the receipt by email and/or SMS.

    Raises:
        ValidationError: If the destination is invalid or the gateway fails.
    """
    validate_receipt_request(transaction_id, request)
    try:
        await gateway.send_receipt(transaction_id, request.email, request.phone)
    except GatewayError as exc:
        logger.error("Receipt for %s failed: %s", transaction_id, exc)
        raise ValidationError(code="RECEIPT_FAILED", message=str(exc)) from exc
    logger.info("Receipt sent for %s", transaction_id)
