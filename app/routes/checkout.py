"""Checkout endpoints — POST /api/v1/checkout/breakdown, POST /api/v1/checkout/override"""
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Request, status
from app.config import CURRENCY_CODE
from app.engine.calculator import InvalidAmount, compute_breakdown, compute_override, format_cents
from app.models.operations import BreakdownRequest, OverrideRequest
from app.repository.store import store
from app.security.auth import require_api_key

router = APIRouter(prefix="/api/v1/checkout", tags=["checkout"])


def _envelope(data, request: Request) -> dict:
    return {
        "data": data,
        "meta": {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "request_id": getattr(request.state, "request_id", "unknown"),
        },
    }


def _invalid_amount(exc: InvalidAmount) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={"error": {"code": "INVALID_AMOUNT", "message": exc.message, "details": {"field": exc.field}}},
    )


@router.post("/breakdown")
async def create_breakdown(
    body: BreakdownRequest,
    request: Request,
    _: str = Depends(require_api_key),
) -> dict:
    """Compute the cent breakdown for the raw checkout inputs without starting a transaction."""
    try:
        breakdown = compute_breakdown(body.subtotal, body.tip, body.tax, body.surcharge_state, body.surcharge)
    except InvalidAmount as exc:
        raise _invalid_amount(exc)
    return _envelope(
        {
            "breakdown": breakdown.model_dump(mode="json"),
            "currency": CURRENCY_CODE,
            "total_formatted": format_cents(breakdown.total),
        },
        request,
    )


@router.post("/override")
async def create_override(
    body: OverrideRequest,
    request: Request,
    _: str = Depends(require_api_key),
) -> dict:
    """Preview the breakdown a surcharge override would send. Blank override means confirm as-is."""
    transaction = store.get_transaction(body.transaction_id)
    if transaction is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": {"code": "TRANSACTION_NOT_FOUND", "message": f"Transaction {body.transaction_id} not found"}},
        )
    try:
        breakdown = compute_override(transaction, body.override, body.mode)
    except InvalidAmount as exc:
        raise _invalid_amount(exc)
    return _envelope(
        {
            "breakdown": breakdown.model_dump(mode="json") if breakdown is not None else None,
            "amount": breakdown.total if breakdown is not None else None,
        },
        request,
    )
