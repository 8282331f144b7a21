"""Unit tests for app/gateway/simulator.py."""
import asyncio
from app.engine.calculator import compute_breakdown
from app.gateway.base import GatewaySession, TerminalHost
from app.gateway.simulator import SimulatedGateway
from app.models.amounts import AmountInput, AmountMode, SurchargeState
from app.models.transaction import ActionStatus, FinalStatus, TransactionKind, TransactionStatus
from app.repository.store import InMemoryStore

HOST = TerminalHost(terminal_id="TERM-T")


def _gateway(**kwargs) -> SimulatedGateway:
    return SimulatedGateway(GatewaySession(merchant_id="M-TEST"), InMemoryStore(), **kwargs)


def _events(gateway: SimulatedGateway, key: str, surcharge: str = "") -> list:
    breakdown = compute_breakdown(
        "12.00",
        AmountInput(text="15", mode=AmountMode.PERCENTAGE),
        AmountInput(text="8", mode=AmountMode.PERCENTAGE),
        SurchargeState.ENABLE if surcharge else SurchargeState.OFF,
        AmountInput(text=surcharge, mode=AmountMode.PERCENTAGE),
    )

    async def collect():
        stream = gateway.start_transaction(TransactionKind.SALE, breakdown.total, breakdown, "USD", key, HOST)
        return [event async for event in stream]

    return asyncio.run(collect())


def test_approved_sale_emits_progress_then_approval():
    events = _events(_gateway(), "KEY-1")
    assert [e.reader_status for e in events] == ["waitingForCard", "cardDetected", "processing", "complete"]
    assert events[-1].final_status.status is FinalStatus.APPROVE
    assert events[-1].transaction.status is TransactionStatus.CAPTURED


def test_replay_of_approved_sale_returns_same_transaction():
    gateway = _gateway()
    first = _events(gateway, "KEY-1")[-1]
    replay = _events(gateway, "KEY-1")
    assert len(replay) == 1
    assert replay[0].final_status.status is FinalStatus.APPROVE
    assert replay[0].transaction_id == first.transaction_id


def test_replay_of_declined_sale_is_still_declined():
    gateway = _gateway(decline_above_cents=1000)
    first = _events(gateway, "KEY-D")[-1]
    assert first.action_status is ActionStatus.FAILURE

    gateway.decline_above_cents = 1_000_000
    replay = _events(gateway, "KEY-D")
    assert len(replay) == 1
    assert replay[0].action_status is ActionStatus.FAILURE
    assert replay[0].final_status.status is FinalStatus.DECLINE
    assert replay[0].status_code == first.status_code
    assert replay[0].transaction_id == first.transaction_id


def test_replay_of_surcharge_pending_sale_still_asks_for_confirmation():
    gateway = _gateway()
    first = _events(gateway, "KEY-S", surcharge="3")[-1]
    assert first.transaction.status is TransactionStatus.SURCHARGE_PENDING

    replay = _events(gateway, "KEY-S", surcharge="3")
    assert len(replay) == 1
    assert replay[0].action_status is ActionStatus.COMPLETE
    assert replay[0].final_status is None
    assert replay[0].transaction.status is TransactionStatus.SURCHARGE_PENDING


def test_replay_after_surcharge_declined_reports_abort():
    gateway = _gateway()
    pending = _events(gateway, "KEY-C", surcharge="3")[-1]
    asyncio.run(gateway.confirm_surcharge(pending.transaction_id, confirm=False))

    replay = _events(gateway, "KEY-C", surcharge="3")
    assert replay[0].final_status.status is FinalStatus.ABORT
    assert replay[0].transaction.status is TransactionStatus.CANCELLED
