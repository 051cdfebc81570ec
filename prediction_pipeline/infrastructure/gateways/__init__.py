"""
Gateways Package - Infrastructure Layer

This package contains concrete implementations of the gateway interfaces
defined in the domain layer.
"""

from .gamma_market_gateway import GammaMarketGateway
from .openrouter_gateway import OpenRouterGateway

__all__ = ["GammaMarketGateway", "OpenRouterGateway"]
