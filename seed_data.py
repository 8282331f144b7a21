"""
Seed data generator for the checkout terminal demo.

Builds a transaction history covering every status the details screen and the
post-transaction operations deal with. Amounts go through the same breakdown
engine as live checkouts, so every record satisfies the total invariant.
Run via: python seed_data.py (standalone) or imported by app startup.
"""
from datetime import datetime, timedelta, timezone
from app.config import CURRENCY_CODE, LOCATION_ID, MERCHANT_ID
from app.engine.calculator import compute_breakdown
from app.models.amounts import AmountInput, AmountMode, SurchargeState
from app.models.transaction import TransactionKind, TransactionRecord, TransactionStatus
from app.repository.store import store

_BASE_TIME = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


def load_seed_data() -> None:
    """Populate the in-memory store with demo transactions."""
    for txn in _build_transactions():
        store.save_transaction(txn)


def _record(
    transaction_id: str,
    kind: TransactionKind,
    status: TransactionStatus,
    subtotal: str,
    tip_percent: str,
    tax_percent: str,
    surcharge_percent: str = "",
    offset_hours: int = 0,
    **extra,
) -> TransactionRecord:
    breakdown = compute_breakdown(
        subtotal,
        AmountInput(text=tip_percent, mode=AmountMode.PERCENTAGE),
        AmountInput(text=tax_percent, mode=AmountMode.PERCENTAGE),
        SurchargeState.ENABLE if surcharge_percent else SurchargeState.OFF,
        AmountInput(text=surcharge_percent, mode=AmountMode.PERCENTAGE),
    )
    return TransactionRecord(
        transaction_id=transaction_id,
        kind=kind,
        status=status,
        amount=breakdown.total,
        subtotal=breakdown.subtotal,
        tip_amount=breakdown.tip_amount,
        tip_type=breakdown.tip_type,
        tax_amount=breakdown.tax_amount,
        tax_rate=breakdown.tax_rate,
        surcharge_amount=breakdown.surcharge_amount,
        currency=CURRENCY_CODE,
        card_brand=extra.pop("card_brand", "VISA"),
        card_last4=extra.pop("card_last4", "4242"),
        merchant_id=MERCHANT_ID,
        location_id=LOCATION_ID,
        terminal_id="TERM-001",
        created_at=_BASE_TIME + timedelta(hours=offset_hours),
        **extra,
    )


def _build_transactions() -> list[TransactionRecord]:
    txns = []

    # ── Captured sales (TXN-SALE-001..010) ─────────────────────────────────

    for i in range(1, 11):
        txns.append(_record(
            f"TXN-SALE-{i:03d}",
            TransactionKind.SALE,
            TransactionStatus.CAPTURED,
            subtotal=f"{10 + i * 3}.{(i * 7) % 100:02d}",
            tip_percent=("15", "18", "20")[i % 3],
            tax_percent="8.25",
            offset_hours=i,
            approval_code=f"A{i:05d}",
        ))

    # ── Open preauths (TXN-AUTH-001..005) ──────────────────────────────────

    for i in range(1, 6):
        txns.append(_record(
            f"TXN-AUTH-{i:03d}",
            TransactionKind.PREAUTH,
            TransactionStatus.AUTHORIZED,
            subtotal=f"{40 + i * 10}.00",
            tip_percent="",
            tax_percent="8.25",
            offset_hours=20 + i,
            card_brand="MASTERCARD",
            card_last4="5454",
            approval_code=f"P{i:05d}",
        ))

    # ── Awaiting surcharge confirmation (TXN-SURCH-001..003) ───────────────

    for i in range(1, 4):
        txns.append(_record(
            f"TXN-SURCH-{i:03d}",
            TransactionKind.SALE,
            TransactionStatus.SURCHARGE_PENDING,
            subtotal=f"{20 * i}.00",
            tip_percent="15",
            tax_percent="8",
            surcharge_percent="3",
            offset_hours=30 + i,
        ))

    # ── Terminal states ────────────────────────────────────────────────────

    refunded = _record(
        "TXN-REFUND-001", TransactionKind.SALE, TransactionStatus.REFUNDED,
        subtotal="25.00", tip_percent="10", tax_percent="8", offset_hours=40,
    )
    txns.append(refunded.model_copy(update={"refunded": refunded.amount}))

    reversed_ = _record(
        "TXN-REVERSE-001", TransactionKind.PREAUTH, TransactionStatus.REVERSED,
        subtotal="60.00", tip_percent="", tax_percent="8", offset_hours=41,
    )
    txns.append(reversed_.model_copy(update={"reversed": reversed_.amount}))

    txns.append(_record(
        "TXN-DECLINE-001", TransactionKind.SALE, TransactionStatus.DECLINED,
        subtotal="999.99", tip_percent="", tax_percent="8", offset_hours=42,
        status_reason="Insufficient funds",
    ))

    return txns


if __name__ == "__main__":
    load_seed_data()
    print(f"Seeded {len(store.list_transactions())} transactions.")
