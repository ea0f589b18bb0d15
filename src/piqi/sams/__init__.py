"""Assessment method (SAM) contract, registry and built-in implementations."""

from .base import SAMContext, SAMHandler, SAMOutcome, SAMTypeError, default_sam
from .builtin import BUILTIN_SAMS
from .registry import SAMRegistry

__all__ = [
    "BUILTIN_SAMS",
    "SAMContext",
    "SAMHandler",
    "SAMOutcome",
    "SAMRegistry",
    "SAMTypeError",
    "default_sam",
]
