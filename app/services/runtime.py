"""Process-wide wiring: the gateway session, the gateway and the per-terminal flow registry."""
from app.config import (
    API_KEY,
    CURRENCY_CODE,
    LOCATION_ID,
    MERCHANT_ID,
    SIMULATOR_DECLINE_ABOVE_CENTS,
    SIMULATOR_EVENT_DELAY,
    SIMULATOR_REQUIRE_SURCHARGE_CONFIRMATION,
    get_terminal_ids,
)
from app.gateway.base import GatewaySession
from app.gateway.simulator import SimulatedGateway
from app.repository.store import store
from app.services.flow_service import FlowRegistry

session = GatewaySession(merchant_id=MERCHANT_ID, location_id=LOCATION_ID, api_key=API_KEY)

gateway = SimulatedGateway(
    session,
    store,
    event_delay=SIMULATOR_EVENT_DELAY,
    require_surcharge_confirmation=SIMULATOR_REQUIRE_SURCHARGE_CONFIRMATION,
    decline_above_cents=SIMULATOR_DECLINE_ABOVE_CENTS,
)

registry = FlowRegistry(gateway, get_terminal_ids(), currency=CURRENCY_CODE)
