"""PIQI message quality scoring engine."""

from .engine import ScoringEngine, ScoringRequest, ScoringResponse

__version__ = "0.1.0"

__all__ = ["ScoringEngine", "ScoringRequest", "ScoringResponse", "__version__"]
