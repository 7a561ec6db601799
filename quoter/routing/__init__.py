"""Routing engine contract and the client for the external pathfinder."""

from quoter.routing.engine import RemoteRoutingEngine, RoutingEngine

__all__ = ["RemoteRoutingEngine", "RoutingEngine"]
