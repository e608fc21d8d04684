"""
Global Telegram update error boundary middleware.

No handler exception may stop update processing. CancelledError is never
swallowed. TelegramForbiddenError and the benign TelegramBadRequest cases
(message not modified, message to delete not found, query too old) are
handled silently.
"""
import asyncio
import logging
from typing import Callable, Awaitable, Dict, Any, Optional

from aiogram import BaseMiddleware
from aiogram.exceptions import TelegramForbiddenError, TelegramBadRequest

from app.core.structured_logger import log_event

logger = logging.getLogger(__name__)

BENIGN_BAD_REQUESTS = (
    "message is not modified",
    "message to delete not found",
    "message to edit not found",
    "query is too old",
)

FALLBACK_ANSWER = "⚠️ Something went wrong. Please try again later."


def _correlation_id(event: Any) -> Optional[str]:
    if getattr(event, "update_id", None) is not None:
        return str(event.update_id)
    callback_query = getattr(event, "callback_query", None)
    if callback_query is not None and getattr(callback_query, "id", None):
        return str(callback_query.id)
    message = getattr(event, "message", None)
    if message is not None and getattr(message, "message_id", None):
        return str(message.message_id)
    return None


def _answer_target(event: Any) -> Any:
    callback_query = getattr(event, "callback_query", None)
    if callback_query is not None:
        return callback_query
    message = getattr(event, "message", None)
    if message is not None:
        return message
    if hasattr(event, "answer"):
        return event
    return None


class TelegramErrorBoundaryMiddleware(BaseMiddleware):
    """
    Wraps handler execution in a strict error boundary.

    On an unexpected exception: structured log + traceback, then a short
    generic answer to the user. Never raises (except CancelledError).
    """

    async def __call__(
        self,
        handler: Callable[[Any, Dict[str, Any]], Awaitable[Any]],
        event: Any,
        data: Dict[str, Any],
    ) -> Any:
        try:
            return await handler(event, data)
        except asyncio.CancelledError:
            raise
        except TelegramForbiddenError as e:
            logger.debug("TelegramForbiddenError (user blocked bot): %s", e)
            return None
        except TelegramBadRequest as e:
            error_msg = str(e).lower()
            if any(marker in error_msg for marker in BENIGN_BAD_REQUESTS):
                return None
            logger.warning("TelegramBadRequest: %s", e)
            return None
        except Exception as e:
            log_event(
                logger,
                component="telegram",
                operation="update_processing",
                correlation_id=_correlation_id(event),
                outcome="failed",
                reason=f"{type(e).__name__}: {str(e)[:200]}",
                level="error",
            )
            logger.exception("UNHANDLED_HANDLER_EXCEPTION", extra={"update_type": type(event).__name__})

            target = _answer_target(event)
            if target is not None:
                try:
                    await target.answer(FALLBACK_ANSWER)
                except Exception as answer_error:
                    logger.debug("Fallback answer failed: %s", answer_error)

            return None
