"""Integration tests — terminal checkout flow over HTTP."""
from decimal import Decimal
from app.repository.store import store
from app.services.runtime import gateway, registry

SALE_FORM = {"amount": "12.00", "tip_percentage": "15", "tax_percentage": "8"}


def _start(client, auth_headers, terminal="TERM-001", kind="SALE", form=None, wait=True):
    body = {"kind": kind}
    if form is not None:
        body["form"] = form
    return client.post(
        f"/api/v1/terminals/{terminal}/transactions",
        params={"wait": str(wait).lower()},
        json=body,
        headers=auth_headers,
    )


def test_list_terminals(client, auth_headers):
    resp = client.get("/api/v1/terminals", headers=auth_headers)
    assert resp.status_code == 200
    terminals = resp.json()["data"]
    assert [t["terminal_id"] for t in terminals] == ["TERM-001", "TERM-002"]
    assert all(t["phase"] == "IDLE" for t in terminals)
    assert all(t["host_attached"] for t in terminals)


def test_unknown_terminal_404(client, auth_headers):
    resp = client.get("/api/v1/terminals/TERM-999/flow", headers=auth_headers)
    assert resp.status_code == 404
    assert resp.json()["detail"]["error"]["code"] == "TERMINAL_NOT_FOUND"


def test_form_intents_update_live_total(client, auth_headers):
    resp = client.post(
        "/api/v1/terminals/TERM-001/form",
        json={"intents": [
            {"type": "amount_changed", "value": "12.00"},
            {"type": "tip_changed", "value": "15"},
            {"type": "tax_changed", "value": "8"},
        ]},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["form"]["amount"] == "12.00"
    assert Decimal(data["calculated_total"]) == Decimal("14.904")


def test_live_total_ignores_invalid_subtotal(client, auth_headers):
    resp = client.post(
        "/api/v1/terminals/TERM-001/form",
        json={"intents": [{"type": "amount_changed", "value": "abc"}]},
        headers=auth_headers,
    )
    assert Decimal(resp.json()["data"]["calculated_total"]) == 0


def test_unknown_intent_rejected(client, auth_headers):
    resp = client.post(
        "/api/v1/terminals/TERM-001/form",
        json={"intents": [{"type": "format_disk"}]},
        headers=auth_headers,
    )
    assert resp.status_code == 422


def test_sale_completes(client, auth_headers):
    resp = _start(client, auth_headers, form=SALE_FORM)
    assert resp.status_code == 200
    flow = resp.json()["data"]["flow"]
    assert flow["phase"] == "COMPLETE"
    assert flow["final_status"] == "Approved"
    assert flow["transaction"]["amount"] == 1490
    assert store.get_transaction(flow["transaction_id"]).status.value == "CAPTURED"


def test_start_without_wait_returns_in_progress(client, auth_headers):
    resp = _start(client, auth_headers, form=SALE_FORM, wait=False)
    flow = resp.json()["data"]["flow"]
    assert flow["phase"] == "IN_PROGRESS"
    assert flow["is_processing"] is True


def test_blank_amount_reports_error(client, auth_headers):
    resp = _start(client, auth_headers, form={"amount": ""})
    flow = resp.json()["data"]["flow"]
    assert flow["error_message"] == "Please enter an amount"
    assert gateway.calls == []


def test_invalid_amount_reports_error(client, auth_headers):
    resp = _start(client, auth_headers, form={"amount": "1O.00"})
    flow = resp.json()["data"]["flow"]
    assert flow["error_message"] == "Invalid amount format"
    assert flow["is_processing"] is False


def test_not_ready_reports_readiness(client, auth_headers):
    gateway.ready = False
    gateway.readiness_message = "Reader offline"
    resp = _start(client, auth_headers, form=SALE_FORM)
    assert resp.json()["data"]["flow"]["error_message"] == "Cannot start transaction: Reader offline"


def test_detached_host_reports_missing_reader(client, auth_headers):
    registry.detach_host("TERM-001")
    resp = _start(client, auth_headers, form=SALE_FORM)
    assert resp.json()["data"]["flow"]["error_message"] == "No card reader is available to start the transaction"


def test_decline_reports_composite_message(client, auth_headers):
    gateway.decline_above_cents = 1000
    resp = _start(client, auth_headers, form=SALE_FORM)
    flow = resp.json()["data"]["flow"]
    assert flow["phase"] == "FAILED"
    assert flow["error_message"].startswith("Transaction Failed\n\nCard declined by issuer")
    assert "Status Code: 5" in flow["error_message"]


def test_surcharge_accept_with_override(client, auth_headers):
    form = dict(SALE_FORM, surcharge_state="ENABLE", surcharge_percentage="3")
    resp = _start(client, auth_headers, form=form)
    flow = resp.json()["data"]["flow"]
    assert flow["phase"] == "SURCHARGE_PENDING"
    assert flow["show_surcharge_confirmation"] is True
    txn = flow["transaction"]

    resp = client.post(
        "/api/v1/terminals/TERM-001/surcharge",
        json={"confirm": True, "override": "1.00", "mode": "FIXED"},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["flow"]["final_status"] == "Surcharge Accepted"
    assert data["flow"]["show_surcharge_confirmation"] is False
    assert data["form"]["surcharge_override"] == ""
    expected = txn["subtotal"] + txn["tip_amount"] + txn["tax_amount"] + 100
    assert data["flow"]["transaction"]["amount"] == expected
    assert store.get_transaction(txn["transaction_id"]).status.value == "CAPTURED"


def test_surcharge_decline_as_is(client, auth_headers):
    form = dict(SALE_FORM, surcharge_state="ENABLE", surcharge_percentage="3")
    txn_id = _start(client, auth_headers, form=form).json()["data"]["flow"]["transaction_id"]
    resp = client.post("/api/v1/terminals/TERM-001/surcharge", json={"confirm": False}, headers=auth_headers)
    assert resp.json()["data"]["flow"]["final_status"] == "Surcharge Declined"
    assert store.get_transaction(txn_id).status.value == "CANCELLED"


def test_surcharge_invalid_override(client, auth_headers):
    form = dict(SALE_FORM, surcharge_state="ENABLE", surcharge_percentage="3")
    _start(client, auth_headers, form=form)
    resp = client.post(
        "/api/v1/terminals/TERM-001/surcharge",
        json={"confirm": True, "override": "lots"},
        headers=auth_headers,
    )
    flow = resp.json()["data"]["flow"]
    assert flow["error_message"] == "Invalid surcharge amount"
    assert flow["show_surcharge_confirmation"] is True


def test_bypassed_surcharge_needs_no_confirmation(client, auth_headers):
    form = dict(SALE_FORM, surcharge_state="BYPASS", surcharge_percentage="3")
    flow = _start(client, auth_headers, form=form).json()["data"]["flow"]
    assert flow["phase"] == "COMPLETE"
    assert flow["final_status"] == "Approved"


def test_effects_are_delivered_once(client, auth_headers):
    form = dict(SALE_FORM, surcharge_state="ENABLE", surcharge_percentage="3")
    _start(client, auth_headers, form=form)
    first = client.get("/api/v1/terminals/TERM-001/effects", headers=auth_headers).json()["data"]
    assert [e["type"] for e in first] == ["surcharge_confirmation_required"]
    second = client.get("/api/v1/terminals/TERM-001/effects", headers=auth_headers).json()["data"]
    assert second == []


def test_dismiss_resets_flow(client, auth_headers):
    _start(client, auth_headers, form=SALE_FORM)
    resp = client.post("/api/v1/terminals/TERM-001/dismiss", headers=auth_headers)
    data = resp.json()["data"]
    assert data["flow"]["phase"] == "IDLE"
    assert data["flow"]["final_status"] is None
    assert data["form"]["amount"] == "12.00"


def test_terminals_are_independent(client, auth_headers):
    _start(client, auth_headers, terminal="TERM-001", form=SALE_FORM)
    resp = client.get("/api/v1/terminals/TERM-002/flow", headers=auth_headers)
    assert resp.json()["data"]["flow"]["phase"] == "IDLE"


def test_new_sale_appears_in_history(client, auth_headers):
    txn_id = _start(client, auth_headers, form=SALE_FORM).json()["data"]["flow"]["transaction_id"]
    resp = client.get("/api/v1/transactions", headers=auth_headers)
    assert resp.json()["data"][0]["transaction_id"] == txn_id


def test_surcharge_confirm_after_completed_sale_is_ignored(client, auth_headers):
    _start(client, auth_headers, form=SALE_FORM)
    resp = client.post("/api/v1/terminals/TERM-001/surcharge", json={"confirm": True}, headers=auth_headers)
    assert resp.status_code == 200
    flow = resp.json()["data"]["flow"]
    assert flow["final_status"] == "Approved"
    assert flow["error_message"] is None
    assert [c for c in gateway.calls if c[0] == "confirm_surcharge"] == []
