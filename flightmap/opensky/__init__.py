"""OpenSky state vector data model."""
from .state_vectors import StateVector, StateVectorCollection

__all__ = ["StateVector", "StateVectorCollection"]
