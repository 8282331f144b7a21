"""Terminal flow endpoints — one checkout flow per terminal under /api/v1/terminals/{terminal_id}"""
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Request, status
from app.engine.calculator import calculated_total
from app.models.flow import SurchargeOverrideChanged, SurchargeOverrideModeToggled, TerminalState
from app.models.operations import FormUpdate, StartTransactionRequest, SurchargeDecision
from app.security.auth import require_api_key
from app.services.flow_service import TransactionFlowController
from app.services.runtime import registry

router = APIRouter(prefix="/api/v1/terminals", tags=["terminals"])


def _envelope(data, request: Request) -> dict:
    return {
        "data": data,
        "meta": {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "request_id": getattr(request.state, "request_id", "unknown"),
        },
    }


def _controller(terminal_id: str) -> TransactionFlowController:
    controller = registry.controller(terminal_id)
    if controller is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": {"code": "TERMINAL_NOT_FOUND", "message": f"Terminal {terminal_id} not found"}},
        )
    return controller


def _render(state: TerminalState) -> dict:
    form = state.form
    data = state.model_dump(mode="json")
    data["calculated_total"] = str(
        calculated_total(form.amount, form.tip, form.tax, form.surcharge_state, form.surcharge)
    )
    return data


@router.get("")
async def list_terminals(request: Request, _: str = Depends(require_api_key)) -> dict:
    """List configured terminals with their current flow phase."""
    terminals = []
    for terminal_id in registry.terminal_ids():
        controller = registry.controller(terminal_id)
        terminals.append({
            "terminal_id": terminal_id,
            "phase": controller.flow.phase.value,
            "host_attached": registry.host(terminal_id) is not None,
        })
    return _envelope(terminals, request)


@router.get("/{terminal_id}/flow")
async def get_flow(terminal_id: str, request: Request, _: str = Depends(require_api_key)) -> dict:
    """Current form and flow state of a terminal."""
    return _envelope(_render(_controller(terminal_id).get_state()), request)


@router.post("/{terminal_id}/form")
async def update_form(
    terminal_id: str,
    body: FormUpdate,
    request: Request,
    _: str = Depends(require_api_key),
) -> dict:
    """Apply form intents in order."""
    controller = _controller(terminal_id)
    state = controller.get_state()
    for intent in body.intents:
        state = controller.dispatch(intent)
    return _envelope(_render(state), request)


@router.post("/{terminal_id}/transactions")
async def start_transaction(
    terminal_id: str,
    body: StartTransactionRequest,
    request: Request,
    wait: bool = False,
    _: str = Depends(require_api_key),
) -> dict:
    """Start a preauth or sale on the terminal.

    Ignored while another attempt is processing. Pass wait=true to block until
    the gateway's event stream has been consumed.
    """
    controller = _controller(terminal_id)
    if body.form is not None and not controller.flow.is_processing:
        controller.load_form(body.form)
    state = await controller.start_transaction(body.kind, registry.host(terminal_id))
    if wait:
        state = await controller.wait_idle()
    return _envelope(_render(state), request)


@router.post("/{terminal_id}/surcharge")
async def confirm_surcharge(
    terminal_id: str,
    body: SurchargeDecision,
    request: Request,
    _: str = Depends(require_api_key),
) -> dict:
    """Accept or decline a pending surcharge, optionally overriding it."""
    controller = _controller(terminal_id)
    if body.override is not None:
        controller.dispatch(SurchargeOverrideChanged(value=body.override))
    if body.mode is not None and body.mode is not controller.get_state().form.surcharge_override_mode:
        controller.dispatch(SurchargeOverrideModeToggled())
    state = await controller.confirm_surcharge(body.confirm)
    return _envelope(_render(state), request)


@router.post("/{terminal_id}/dismiss")
async def dismiss(terminal_id: str, request: Request, _: str = Depends(require_api_key)) -> dict:
    """Reset the terminal's attempt and stop listening to its event stream."""
    return _envelope(_render(_controller(terminal_id).dismiss()), request)


@router.get("/{terminal_id}/effects")
async def drain_effects(terminal_id: str, request: Request, _: str = Depends(require_api_key)) -> dict:
    """Return pending one-shot effects. Each effect is delivered once."""
    effects = _controller(terminal_id).effects.drain()
    return _envelope([e.model_dump(mode="json") for e in effects], request)
