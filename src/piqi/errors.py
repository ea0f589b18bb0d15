"""Exceptions that abort a scoring request.

Pass, Fail and Skip are recorded on evaluation results and never raised.
Everything here is fatal to the request that raised it.
"""

from __future__ import annotations


class PiqiError(Exception):
    """Base class for request-fatal scoring errors."""


class ConfigurationError(PiqiError):
    """The reference bundle is internally inconsistent."""


class SAMExecutionError(PiqiError):
    """A SAM implementation reported an Errored outcome."""

    def __init__(self, sam_mnemonic: str, message: str | None = None) -> None:
        self.sam_mnemonic = sam_mnemonic
        self.detail = message
        text = f"{sam_mnemonic} failed to process"
        if message:
            text += f": {message}"
        super().__init__(text)


class MessageFormatError(PiqiError):
    """The inbound message does not fit the entity model."""
