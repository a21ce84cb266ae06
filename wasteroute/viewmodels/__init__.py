"""
View models - observable, display-ready state for admin consumers
"""
from wasteroute.viewmodels.route_details import (
    RouteDetailsUiState,
    RouteDetailsViewModel,
    RouteProgress,
    RouteStep,
)

__all__ = ["RouteDetailsUiState", "RouteDetailsViewModel", "RouteProgress", "RouteStep"]
