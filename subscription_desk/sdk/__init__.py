"""
SDK for Subscription Desk.

Provides programmatic access to the subscription backend.
"""

from .gateway import GatewayError, RemoteGateway

__all__ = ["GatewayError", "RemoteGateway"]
