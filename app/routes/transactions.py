"""Transaction endpoints — history, details, operations and receipts under /api/v1/transactions"""
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Request, status
from app.engine.calculator import format_cents
from app.models.operations import OperationRequest, ReceiptRequest
from app.models.transaction import TransactionRecord
from app.security.auth import require_api_key
from app.services.runtime import gateway
from app.services.transaction_service import get_transaction, list_transactions, process_operation, send_receipt
from app.validators.receipt_validator import ValidationError

router = APIRouter(prefix="/api/v1/transactions", tags=["transactions"])


def _envelope(data, request: Request) -> dict:
    return {
        "data": data,
        "meta": {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "request_id": getattr(request.state, "request_id", "unknown"),
        },
    }


def _validation_error_to_http(exc: ValidationError) -> HTTPException:
    return HTTPException(
        status_code=exc.http_status,
        detail={"error": {"code": exc.code, "message": exc.message, "details": exc.details}},
    )


def _details(txn: TransactionRecord) -> dict:
    data = txn.model_dump(mode="json")
    data.update(
        is_refundable=txn.is_refundable,
        total_formatted=format_cents(txn.amount),
        subtotal_formatted=format_cents(txn.subtotal),
        tax_formatted=format_cents(txn.tax_amount),
        tip_formatted=format_cents(txn.tip_amount),
        surcharge_formatted=format_cents(txn.surcharge_amount),
    )
    return data


@router.get("")
async def list_all(request: Request, _: str = Depends(require_api_key)) -> dict:
    """List all transactions, newest first."""
    txns = await list_transactions(gateway)
    return _envelope([t.model_dump(mode="json") for t in txns], request)


@router.get("/{transaction_id}")
async def get_one(transaction_id: str, request: Request, _: str = Depends(require_api_key)) -> dict:
    """Retrieve a single transaction by its ID."""
    txn = await get_transaction(gateway, transaction_id)
    if txn is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": {"code": "TRANSACTION_NOT_FOUND", "message": f"Transaction {transaction_id} not found"}},
        )
    return _envelope(_details(txn), request)


@router.post("/{transaction_id}/operations")
async def run_operation(
    transaction_id: str,
    body: OperationRequest,
    request: Request,
    _: str = Depends(require_api_key),
) -> dict:
    """Incremental auth, capture, reverse, tip adjust or refund."""
    try:
        result, updated = await process_operation(gateway, transaction_id, body)
    except ValidationError as exc:
        raise _validation_error_to_http(exc)
    return _envelope({"result": result.model_dump(mode="json"), "transaction": _details(updated)}, request)


@router.post("/{transaction_id}/receipt", status_code=status.HTTP_202_ACCEPTED)
async def post_receipt(
    transaction_id: str,
    body: ReceiptRequest,
    request: Request,
    _: str = Depends(require_api_key),
) -> dict:
    """Send the receipt by email and/or SMS."""
    try:
        await send_receipt(gateway, transaction_id, body)
    except ValidationError as exc:
        raise _validation_error_to_http(exc)
    return _envelope({"transaction_id": transaction_id, "sent": True}, request)
