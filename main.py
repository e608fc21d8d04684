import asyncio
import logging
import os
import sys
import uuid

# Configure logging FIRST (before any other imports that may log)
# Routes INFO/WARNING → stdout, ERROR/CRITICAL → stderr for correct container classification
from app.core.logging_config import setup_logging
setup_logging()

from aiogram import Bot, Dispatcher
from aiogram.exceptions import TelegramConflictError
from aiogram.fsm.storage.base import BaseEventIsolation, BaseStorage
from aiogram.fsm.storage.memory import MemoryStorage, SimpleEventIsolation
from aiogram.fsm.storage.redis import RedisStorage
from aiogram.types import BotCommand

import config
from app.core.structured_logger import log_event
from app.core.telegram_error_middleware import TelegramErrorBoundaryMiddleware
from app.handlers import router as root_router
from app.handlers.user.referrals import cancel_pending_auto_close
from app.i18n import DEFAULT_LANGUAGE, get_text as i18n_get_text
from app.services.referrals import ReferralApiClient, ReferralSubmissionController

# ====================================================================================
# LOGGING CONTRACT
# ====================================================================================
# Standard fields (see app.core.structured_logger.log_event):
# - component        (handler / referrals / polling / shutdown)
# - operation        (what is happening)
# - correlation_id   (callback id, update id or widget generation)
# - outcome          (success | failed | dropped | cancelled)
# - duration_ms      (when applicable)
# - reason           (short, non-PII explanation)
#
# SECURITY:
# - DO NOT log the bot token, names or emails; field names and status codes only
# ====================================================================================

logger = logging.getLogger(__name__)

POLLING_RESTART_DELAY = 5


def build_storage() -> BaseStorage:
    """Redis-backed FSM storage when REDIS_URL is set, in-memory otherwise."""
    if config.REDIS_URL:
        logger.info("FSM storage: Redis")
        return RedisStorage.from_url(config.REDIS_URL)
    logger.warning("FSM storage: memory (open forms are lost on restart)")
    return MemoryStorage()


def build_widget_isolation(storage: BaseStorage) -> BaseEventIsolation:
    """Per-chat widget lock; shared through Redis when Redis backs the FSM."""
    if isinstance(storage, RedisStorage):
        return storage.create_isolation()
    return SimpleEventIsolation()


def build_referral_controller() -> ReferralSubmissionController:
    """The API base URL is resolved here once and injected into the client."""
    client = ReferralApiClient(base_url=config.REFERRAL_API_URL, timeout=config.REFERRAL_API_TIMEOUT)
    logger.info("Referral API client configured: %r", client)
    return ReferralSubmissionController(client, close_delay=config.REFERRAL_AUTO_CLOSE_SECONDS)


def build_dispatcher() -> Dispatcher:
    storage = build_storage()
    dp = Dispatcher(storage=storage)
    dp.update.middleware(TelegramErrorBoundaryMiddleware())
    dp.include_router(root_router)
    # Workflow data: handlers receive these as `referral_controller` and `referral_lock`
    dp["referral_controller"] = build_referral_controller()
    dp["referral_lock"] = build_widget_isolation(storage)
    return dp


async def register_commands(bot: Bot) -> None:
    language = DEFAULT_LANGUAGE
    try:
        await bot.set_my_commands([
            BotCommand(command="start", description=i18n_get_text(language, "commands.start")),
            BotCommand(command="refer", description=i18n_get_text(language, "commands.refer")),
            BotCommand(command="cancel", description=i18n_get_text(language, "commands.cancel")),
        ])
        logger.info("Bot commands registered")
    except Exception as e:
        logger.warning(f"Failed to register bot commands: {e}")


async def main():
    instance_id = os.getenv("POLLING_INSTANCE_ID", str(uuid.uuid4()))
    logger.info("BOT_INSTANCE_STARTED pid=%s instance_id=%s env=%s", os.getpid(), instance_id, config.APP_ENV.upper())

    bot = Bot(token=config.BOT_TOKEN)
    dp = build_dispatcher()

    await register_commands(bot)

    try:
        used_updates = dp.resolve_used_update_types()
        logger.info(f"DISPATCHER_READY updates={used_updates}")
    except Exception as e:
        logger.warning(f"Failed to resolve update types: {e}")
        used_updates = None

    try:
        while True:
            try:
                await bot.delete_webhook(drop_pending_updates=True)
                log_event(
                    logger,
                    component="polling",
                    operation="polling_start",
                    outcome="success",
                    correlation_id=instance_id,
                )
                await dp.start_polling(
                    bot,
                    allowed_updates=used_updates if used_updates else None,
                    polling_timeout=30,
                    handle_signals=False,
                )
                break
            except asyncio.CancelledError:
                log_event(logger, component="polling", operation="polling_cancelled", outcome="cancelled")
                break
            except TelegramConflictError:
                log_event(
                    logger,
                    component="polling",
                    operation="conflict",
                    outcome="failed",
                    reason="another bot instance is running",
                    level="critical",
                )
                raise SystemExit(1)
            except Exception as e:
                log_event(
                    logger,
                    component="polling",
                    operation="polling_crash",
                    outcome="failed",
                    reason=f"{type(e).__name__}: {str(e)[:200]}",
                    level="error",
                )
                logger.error("Polling crashed, restarting in %s seconds", POLLING_RESTART_DELAY, exc_info=True)
                await asyncio.sleep(POLLING_RESTART_DELAY)
    finally:
        log_event(logger, component="shutdown", operation="shutdown_start", outcome="success")

        cancelled = await cancel_pending_auto_close()
        log_event(
            logger,
            component="shutdown",
            operation="auto_close_cancelled",
            outcome="success",
            reason=f"count={cancelled}",
        )

        try:
            await dp.storage.close()
        except Exception as e:
            logger.error(f"Error closing FSM storage: {e}")

        try:
            await bot.session.close()
            logger.info("Bot session closed")
        except Exception as e:
            logger.debug(f"Error closing bot session: {e}")

        log_event(logger, component="shutdown", operation="shutdown_completed", outcome="success")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Bot stopped")
        sys.exit(0)
