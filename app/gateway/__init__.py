from .base import GatewayError, GatewaySession, PaymentGateway, Readiness, TerminalHost
from .simulator import SimulatedGateway

__all__ = [
    "GatewayError",
    "GatewaySession",
    "PaymentGateway",
    "Readiness",
    "TerminalHost",
    "SimulatedGateway",
]
