from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

# Reader status reported when the peripheral has nothing to say.
READER_STATUS_UNKNOWN = "unknown"

# A failure event with this status code is a progress notice, not a failure.
NON_TERMINAL_FAILURE_CODE = 12


class TransactionKind(str, Enum):
    PREAUTH = "PREAUTH"
    SALE = "SALE"


class TransactionStatus(str, Enum):
    PENDING = "PENDING"
    SURCHARGE_PENDING = "SURCHARGE_PENDING"
    AUTHORIZED = "AUTHORIZED"
    CAPTURED = "CAPTURED"
    DECLINED = "DECLINED"
    REVERSED = "REVERSED"
    REFUNDED = "REFUNDED"
    CANCELLED = "CANCELLED"


class ActionStatus(str, Enum):
    IN_PROGRESS = "IN_PROGRESS"
    FAILURE = "FAILURE"
    COMPLETE = "COMPLETE"
    CANCELLED = "CANCELLED"


class FinalStatus(str, Enum):
    APPROVE = "APPROVE"
    ABORT = "ABORT"
    DECLINE = "DECLINE"
    FAILURE = "FAILURE"
    ALT_SERVICE = "ALT_SERVICE"
    UNKNOWN = "UNKNOWN"


class FinalStatusValue(BaseModel):
    """Terminal outcome; `raw` holds the gateway's text when the status is UNKNOWN."""
    model_config = {"frozen": True}

    status: FinalStatus
    raw: Optional[str] = None


class TransactionRecord(BaseModel):
    transaction_id: str = Field(..., min_length=1, max_length=64)
    kind: TransactionKind = TransactionKind.SALE
    status: TransactionStatus
    amount: int = Field(..., ge=0)
    subtotal: int = Field(0, ge=0)
    tip_amount: int = Field(0, ge=0)
    tip_type: str = "fixed"
    tax_amount: int = Field(0, ge=0)
    tax_rate: Optional[Decimal] = None
    surcharge_amount: int = Field(0, ge=0)
    currency: str = Field("USD", min_length=3, max_length=3)
    card_brand: Optional[str] = None
    card_last4: Optional[str] = Field(None, min_length=4, max_length=4, pattern=r'^\d{4}$')
    merchant_id: Optional[str] = None
    location_id: Optional[str] = None
    terminal_id: Optional[str] = None
    approval_code: Optional[str] = None
    status_reason: Optional[str] = None
    refunded: int = Field(0, ge=0)
    reversed: int = Field(0, ge=0)
    idempotency_key: Optional[str] = None
    created_at: datetime

    @property
    def is_refundable(self) -> bool:
        return self.status in {TransactionStatus.CAPTURED, TransactionStatus.AUTHORIZED} and self.refunded < self.amount


class TransactionResponseEvent(BaseModel):
    """One element of the event stream the gateway emits for a single attempt."""
    model_config = {"frozen": True}

    action_status: ActionStatus
    reader_status: str = READER_STATUS_UNKNOWN
    display_message: Optional[str] = None
    status_code: Optional[int] = None
    final_status: Optional[FinalStatusValue] = None
    transaction: Optional[TransactionRecord] = None
    transaction_id: Optional[str] = None
