"""Payout gateway adapters."""

from shortlet.gateways.base import GatewayType, PayoutGateway
from shortlet.gateways.manual import ManualGateway


def get_gateway(gateway_type: str | GatewayType = GatewayType.MANUAL) -> PayoutGateway:
    """Gateway adapter for ``gateway_type``."""
    if GatewayType(gateway_type) == GatewayType.MANUAL:
        return ManualGateway()
    raise ValueError(f"Unsupported payout gateway: {gateway_type}")
