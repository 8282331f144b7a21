from enum import Enum
from decimal import Decimal
from typing import Annotated, Optional
from pydantic import BaseModel, Field
from app.models.amounts import AmountInput, AmountMode, SurchargeState
from app.models.flow import CheckoutForm, FormIntent
from app.models.transaction import TransactionKind


class PaymentOperation(str, Enum):
    INCREMENTAL_AUTH = "INCREMENTAL_AUTH"
    CAPTURE = "CAPTURE"
    REVERSE = "REVERSE"
    ADJUST = "ADJUST"
    REFUND = "REFUND"

    @property
    def display_name(self) -> str:
        return {
            PaymentOperation.INCREMENTAL_AUTH: "Incremental Auth",
            PaymentOperation.CAPTURE: "Capture",
            PaymentOperation.REVERSE: "Reverse",
            PaymentOperation.ADJUST: "Adjust Tip",
            PaymentOperation.REFUND: "Refund",
        }[self]


class OperationRequest(BaseModel):
    model_config = {"extra": "forbid"}

    operation: PaymentOperation
    amount: Optional[int] = Field(None, ge=0, le=100_000_000)
    tip_mode: Optional[AmountMode] = None
    tip_percentage: Optional[Decimal] = Field(None, ge=Decimal("0"), le=Decimal("100"))


class OperationResult(BaseModel):
    success: bool
    message: str
    transaction_id: str


class ReceiptRequest(BaseModel):
    model_config = {"extra": "forbid"}

    email: Optional[str] = Field(None, max_length=254)
    phone: Optional[str] = Field(None, max_length=32)


class BreakdownRequest(BaseModel):
    model_config = {"extra": "forbid"}

    subtotal: str = Field(..., max_length=32)
    tip: AmountInput = AmountInput()
    tax: AmountInput = AmountInput()
    surcharge_state: SurchargeState = SurchargeState.OFF
    surcharge: AmountInput = AmountInput()


class OverrideRequest(BaseModel):
    model_config = {"extra": "forbid"}

    transaction_id: str = Field(..., min_length=1, max_length=64)
    override: str = Field("", max_length=32)
    mode: AmountMode = AmountMode.PERCENTAGE


class StartTransactionRequest(BaseModel):
    model_config = {"extra": "forbid"}

    kind: TransactionKind = TransactionKind.SALE
    form: Optional[CheckoutForm] = None


class SurchargeDecision(BaseModel):
    model_config = {"extra": "forbid"}

    confirm: bool
    override: Optional[str] = Field(None, max_length=32)
    mode: Optional[AmountMode] = None


class FormUpdate(BaseModel):
    model_config = {"extra": "forbid"}

    intents: list[Annotated[FormIntent, Field(discriminator="type")]] = Field(..., max_length=50)
