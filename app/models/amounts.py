from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, model_validator


class AmountMode(str, Enum):
    FIXED = "FIXED"
    PERCENTAGE = "PERCENTAGE"

    def toggled(self) -> "AmountMode":
        return AmountMode.FIXED if self is AmountMode.PERCENTAGE else AmountMode.PERCENTAGE

    @property
    def label(self) -> str:
        """Lower-case label the gateway expects in `tip_type`."""
        return "percentage" if self is AmountMode.PERCENTAGE else "fixed"


class SurchargeState(str, Enum):
    OFF = "OFF"
    BYPASS = "BYPASS"
    ENABLE = "ENABLE"


class AmountInput(BaseModel):
    model_config = {"extra": "forbid"}

    text: str = Field("", max_length=32)
    mode: AmountMode = AmountMode.PERCENTAGE


class Surcharge(BaseModel):
    model_config = {"frozen": True}

    amount: Optional[int] = Field(None, ge=0)
    percentage: Optional[Decimal] = None
    bypass: bool = False


class PaymentBreakdown(BaseModel):
    model_config = {"frozen": True}

    subtotal: int = Field(..., ge=0)
    tax_amount: int = Field(0, ge=0)
    tax_rate: Optional[Decimal] = None
    tip_amount: int = Field(0, ge=0)
    tip_rate: Optional[Decimal] = None
    tip_type: str = "fixed"
    surcharge: Surcharge = Surcharge()
    surcharge_amount: int = Field(0, ge=0)
    total: int = Field(..., ge=0)

    @model_validator(mode="after")
    def _total_matches_components(self) -> "PaymentBreakdown":
        expected = self.subtotal + self.tip_amount + self.tax_amount + self.surcharge_amount
        if self.total != expected:
            raise ValueError(f"total {self.total} does not equal sum of components {expected}")
        return self
