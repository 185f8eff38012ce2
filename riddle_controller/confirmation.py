"""Success confirmation gate shown after a riddle's final step is solved."""
from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any, Dict, Optional

from .errors import InvalidActionError
from .models import Riddle

logger = logging.getLogger(__name__)


class SuccessConfirmation:
    """Holds the solved riddle until the player acknowledges it.

    Confirming invokes ``on_confirm`` (which records the question as solved)
    and has no other effect on the session.
    """

    def __init__(self, on_confirm: Callable[[], Awaitable[Any]]) -> None:
        self._on_confirm = on_confirm
        self._riddle: Optional[Riddle] = None

    @property
    def is_open(self) -> bool:
        return self._riddle is not None

    @property
    def riddle(self) -> Optional[Riddle]:
        return self._riddle

    def open(self, riddle: Riddle) -> Dict[str, Any]:
        self._riddle = riddle
        logger.info(f"🎉 [CONFIRM] Riddle {riddle.id} solved, awaiting confirmation")
        return {"riddle_id": riddle.id, "question": riddle.prompt_text}

    def close(self) -> None:
        self._riddle = None

    async def confirm(self) -> Any:
        if self._riddle is None:
            raise InvalidActionError("confirm", "no solved riddle to confirm")
        self._riddle = None
        return await self._on_confirm()


__all__ = ["SuccessConfirmation"]
