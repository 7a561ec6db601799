"""Ordered bootstrap of the provider graph and the routing engine."""

from quoter.bootstrap.coordinator import BootstrapCoordinator, ProviderGraph
from quoter.bootstrap.factory import ProviderFactory
from quoter.bootstrap.state import ServiceState

__all__ = ["BootstrapCoordinator", "ProviderFactory", "ProviderGraph", "ServiceState"]
