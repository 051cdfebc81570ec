"""
Domain Layer Package

This package contains the core business rules of the prediction pipeline.
It defines entities, repositories, gateways, ports and services without
dependencies on external frameworks or infrastructure concerns.
"""

# Re-export submodules
from prediction_pipeline.domain import (
    entities,
    gateways,
    ports,
    repositories,
    services,
)

__all__ = ["entities", "gateways", "repositories", "services", "ports"]
