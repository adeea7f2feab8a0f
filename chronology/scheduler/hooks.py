"""Handlers invoked when a scheduled action fires."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence

from apscheduler.util import ref_to_obj

from chronology.errors import HandlerConfigError

logger = logging.getLogger(__name__)

ActionHandler = Callable[[Mapping[str, object]], Awaitable[object] | object]


class ActionHooks:
    """Action slug to handler table. A slug may have several handlers."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[ActionHandler]] = {}

    def add_handler(self, action: str, handler: ActionHandler) -> None:
        self._handlers.setdefault(action, []).append(handler)

    def remove_handler(self, action: str, handler: ActionHandler) -> bool:
        handlers = self._handlers.get(action, [])
        if handler not in handlers:
            return False
        handlers.remove(handler)
        if not handlers:
            del self._handlers[action]
        return True

    def has_handlers(self, action: str) -> bool:
        return bool(self._handlers.get(action))

    async def dispatch(self, action: str, context: Mapping[str, object]) -> int:
        """Run every handler for ``action`` in registration order.

        A failing handler is logged and does not stop the others.

        Returns:
            The number of handlers that completed without raising.
        """
        handlers = list(self._handlers.get(action, []))
        if not handlers:
            logger.info("No handlers for action %s", action)
            return 0

        completed = 0
        for handler in handlers:
            try:
                result = handler(context)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Handler for action %s failed", action)
                continue
            completed += 1
        return completed


def load_handlers(hooks: ActionHooks, table: Mapping[str, Sequence[str]]) -> int:
    """Attach handlers named by ``module:attribute`` references.

    Raises:
        HandlerConfigError: If a reference cannot be imported or is not callable.

    Returns:
        The number of handlers attached.
    """
    attached = 0
    for action, refs in table.items():
        for ref in refs:
            try:
                handler = ref_to_obj(ref)
            except (LookupError, TypeError, ValueError) as exc:
                raise HandlerConfigError(action, ref, str(exc)) from exc
            if not callable(handler):
                raise HandlerConfigError(action, ref, "not callable")
            hooks.add_handler(action, handler)
            attached += 1
    logger.info("Loaded %d configured action handlers", attached)
    return attached


__all__ = ["ActionHandler", "ActionHooks", "load_handlers"]
