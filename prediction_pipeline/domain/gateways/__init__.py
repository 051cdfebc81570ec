"""
Gateways Package - Domain Layer

This package contains interfaces defining gateway contracts
for external service communications. Specific implementations
are provided by the infrastructure layer.
"""

from .market_data_gateway import IMarketDataGateway
from .prediction_provider_gateway import IPredictionProviderGateway

__all__ = ["IMarketDataGateway", "IPredictionProviderGateway"]
