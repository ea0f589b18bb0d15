from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

from .base import SAMContext, SAMHandler, SAMOutcome, default_sam

logger = logging.getLogger(__name__)


class SAMRegistry:
    """Maps SAM mnemonics to implementations.

    Unknown mnemonics resolve to ``default_sam`` (always Failed) so a
    missing implementation shows up in the scores instead of aborting the
    request. Exceptions raised inside an implementation become Errored
    outcomes.
    """

    def __init__(
        self,
        handlers: Optional[Dict[str, SAMHandler]] = None,
        *,
        default: SAMHandler = default_sam,
    ) -> None:
        self._handlers: Dict[str, SAMHandler] = dict(handlers or {})
        self._default = default

    @classmethod
    def with_builtins(cls) -> "SAMRegistry":
        from .builtin import BUILTIN_SAMS

        return cls(BUILTIN_SAMS)

    def register(self, mnemonic: str, handler: SAMHandler) -> None:
        self._handlers[mnemonic] = handler

    def __contains__(self, mnemonic: object) -> bool:
        return mnemonic in self._handlers

    def resolve(self, mnemonic: str) -> Tuple[SAMHandler, bool]:
        """Return (handler, is_default) for ``mnemonic``."""
        handler = self._handlers.get(mnemonic)
        if handler is None:
            return self._default, True
        return handler, False

    def execute(self, mnemonic: str, context: SAMContext) -> SAMOutcome:
        handler, is_default = self.resolve(mnemonic)
        if is_default:
            logger.warning(
                f"SAM [{mnemonic}] has no registered implementation. "
                "Executing default SAM instead."
            )
        try:
            return handler(context)
        except Exception as exc:  # noqa: BLE001
            logger.debug(f"SAM [{mnemonic}] raised on {context.item.key}: {exc}")
            return SAMOutcome.error(str(exc) or type(exc).__name__)
