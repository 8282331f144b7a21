from enum import Enum
from typing import Literal, Optional, Union
from pydantic import BaseModel, Field
from app.models.amounts import AmountInput, AmountMode, SurchargeState
from app.models.transaction import TransactionRecord


class FlowPhase(str, Enum):
    IDLE = "IDLE"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"
    SURCHARGE_PENDING = "SURCHARGE_PENDING"


class CheckoutForm(BaseModel):
    """Raw text typed into the checkout screen.

    Tip, tax and surcharge keep one text per mode so that toggling the mode
    does not lose what was typed for the other one.
    """

    amount: str = ""
    tip_mode: AmountMode = AmountMode.PERCENTAGE
    tip_percentage: str = ""
    tip_fixed: str = ""
    tax_mode: AmountMode = AmountMode.PERCENTAGE
    tax_percentage: str = ""
    tax_fixed: str = ""
    surcharge_state: SurchargeState = SurchargeState.OFF
    surcharge_mode: AmountMode = AmountMode.PERCENTAGE
    surcharge_percentage: str = ""
    surcharge_fixed: str = ""
    surcharge_override: str = ""
    surcharge_override_mode: AmountMode = AmountMode.PERCENTAGE

    @staticmethod
    def _pick(mode: AmountMode, percentage: str, fixed: str) -> AmountInput:
        return AmountInput(text=percentage if mode is AmountMode.PERCENTAGE else fixed, mode=mode)

    @property
    def tip(self) -> AmountInput:
        return self._pick(self.tip_mode, self.tip_percentage, self.tip_fixed)

    @property
    def tax(self) -> AmountInput:
        return self._pick(self.tax_mode, self.tax_percentage, self.tax_fixed)

    @property
    def surcharge(self) -> AmountInput:
        return self._pick(self.surcharge_mode, self.surcharge_percentage, self.surcharge_fixed)


class TransactionFlowState(BaseModel):
    phase: FlowPhase = FlowPhase.IDLE
    attempt_id: Optional[str] = None
    # Only the latest message is kept.
    status_messages: list[str] = Field(default_factory=list)
    is_processing: bool = False
    final_status: Optional[str] = None
    transaction_id: Optional[str] = None
    transaction: Optional[TransactionRecord] = None
    error_message: Optional[str] = None
    show_surcharge_confirmation: bool = False
    is_confirming_surcharge: bool = False

    @property
    def is_terminal(self) -> bool:
        return self.phase in {FlowPhase.COMPLETE, FlowPhase.FAILED}


class TerminalState(BaseModel):
    """Everything one terminal's checkout screen renders."""
    form: CheckoutForm = Field(default_factory=CheckoutForm)
    flow: TransactionFlowState = Field(default_factory=TransactionFlowState)


# ── Intents ─────────────────────────────────────────────────────────────────

class AmountChanged(BaseModel):
    type: Literal["amount_changed"] = "amount_changed"
    value: str = Field(..., max_length=32)


class TipChanged(BaseModel):
    type: Literal["tip_changed"] = "tip_changed"
    value: str = Field(..., max_length=32)


class TipModeToggled(BaseModel):
    type: Literal["tip_mode_toggled"] = "tip_mode_toggled"


class TaxChanged(BaseModel):
    type: Literal["tax_changed"] = "tax_changed"
    value: str = Field(..., max_length=32)


class TaxModeToggled(BaseModel):
    type: Literal["tax_mode_toggled"] = "tax_mode_toggled"


class SurchargeStateChanged(BaseModel):
    type: Literal["surcharge_state_changed"] = "surcharge_state_changed"
    state: SurchargeState


class SurchargeChanged(BaseModel):
    type: Literal["surcharge_changed"] = "surcharge_changed"
    value: str = Field(..., max_length=32)


class SurchargeModeToggled(BaseModel):
    type: Literal["surcharge_mode_toggled"] = "surcharge_mode_toggled"


class SurchargeOverrideChanged(BaseModel):
    type: Literal["surcharge_override_changed"] = "surcharge_override_changed"
    value: str = Field(..., max_length=32)


class SurchargeOverrideModeToggled(BaseModel):
    type: Literal["surcharge_override_mode_toggled"] = "surcharge_override_mode_toggled"


class DismissResult(BaseModel):
    type: Literal["dismiss_result"] = "dismiss_result"


FormIntent = Union[
    AmountChanged,
    TipChanged,
    TipModeToggled,
    TaxChanged,
    TaxModeToggled,
    SurchargeStateChanged,
    SurchargeChanged,
    SurchargeModeToggled,
    SurchargeOverrideChanged,
    SurchargeOverrideModeToggled,
    DismissResult,
]


# ── One-shot effects ────────────────────────────────────────────────────────

class ShowError(BaseModel):
    type: Literal["show_error"] = "show_error"
    message: str


class SurchargeConfirmationRequired(BaseModel):
    type: Literal["surcharge_confirmation_required"] = "surcharge_confirmation_required"
    transaction_id: Optional[str] = None


class TransactionFinished(BaseModel):
    type: Literal["transaction_finished"] = "transaction_finished"
    phase: FlowPhase
    transaction_id: Optional[str] = None
    final_status: Optional[str] = None


Effect = Union[ShowError, SurchargeConfirmationRequired, TransactionFinished]
