import asyncio
import logging
from typing import Any, Awaitable, Callable

from telegram import Update
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    ContextTypes,
    ExtBot,
    MessageHandler,
    filters,
)

from planner.bot.context import BotActionContext, CallbackBotContext, ChatBotContext
from planner.bot.telegram_io import TelegramRenderer, event_from_update
from planner.data.repository import Repository, RepositoryError
from planner.dialog.actions import decode_action
from planner.dialog.coordinator import DialogCoordinator
from planner.dialog.session_store import SessionSweeper
from planner.handlers.handler import Handler
from planner.helpers.command_validation import ValidationArgumentsError
from planner.localization import Localization

logger = logging.getLogger(__name__)


class Bot:
    def __init__(
        self,
        handlers: list[Handler],
        repository: Repository,
        coordinator: DialogCoordinator,
        texts: Localization,
        sweeper: SessionSweeper | None = None,
        admin_ids: set[int] | None = None,
    ):
        self.handlers = handlers
        self.repository = repository
        self.coordinator = coordinator
        self.texts = texts
        self.sweeper = sweeper
        self.admin_ids = admin_ids or set()
        self._sweeper_task: asyncio.Task | None = None

        self.bot: ExtBot[None] = None  # type: ignore

    def start(
        self,
        token: str,
        drop_pending_updates: bool,
        local_server: str | None = None,
    ):
        applicationBuilder = (
            Application.builder()
            .token(token)
            .read_timeout(60)
            .write_timeout(60)
            .connect_timeout(60)
        )

        if local_server is not None:
            applicationBuilder = (
                applicationBuilder.base_url(local_server + "/bot")
                .base_file_url(local_server + "/file/bot")
                .local_mode(True)
            )

        application = applicationBuilder.concurrent_updates(True).build()

        application.add_handler(MessageHandler(filters.ALL, self._chat, block=False))
        application.add_handler(CallbackQueryHandler(self._callback, block=False))

        application.post_init = self._post_init
        application.post_stop = self._post_stop

        self.bot = application.bot
        if isinstance(self.coordinator.renderer, TelegramRenderer):
            self.coordinator.renderer.bot = self.bot

        application.run_polling(
            allowed_updates=[Update.MESSAGE, Update.CALLBACK_QUERY],
            drop_pending_updates=drop_pending_updates,
            close_loop=False,
        )

    async def _post_init(self, _application: Application):
        await self.repository.migrate()
        if not self.admin_ids <= self.repository.db.admin_ids:
            self.repository.db.admin_ids |= self.admin_ids
            await self.repository.save()

        if self.sweeper is not None:
            self._sweeper_task = asyncio.create_task(self.sweeper.start())
            self._sweeper_task.add_done_callback(self._on_sweeper_done)

    async def _post_stop(self, _application: Application):
        task, self._sweeper_task = self._sweeper_task, None
        if task is None or task.done():
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            logger.debug("Session sweeper stopped")

    def _on_sweeper_done(self, task: asyncio.Task):
        if not task.cancelled() and task.exception() is not None:
            logger.error("Session sweeper failed", exc_info=task.exception())

    async def _chat(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        if update.message is None:
            return False  # edits are ignored

        ctx = ChatBotContext(
            self.repository,
            self.bot,
            self.coordinator,
            self.texts,
            update,
            context,
            event_from_update(update, self.texts, self._preferred_language(update)),
            update.message,
        )

        await self._action(ctx, "chat", None)

    async def _callback(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        if update.callback_query is None:
            logger.warning(f"invalid callback call: {update}")
            return False

        ctx = CallbackBotContext(
            self.repository,
            self.bot,
            self.coordinator,
            self.texts,
            update,
            context,
            event_from_update(update, self.texts, self._preferred_language(update)),
            update.callback_query,
            decode_action(update.callback_query.data),
        )

        await self._action(ctx, "callback", ctx.answer)

    async def _action(
        self,
        context: BotActionContext,
        action: str,
        func: Callable[[], Awaitable[Any]] | None,
    ):
        update = context.update
        user = update.effective_user
        if user is None:
            return

        try:
            await self.repository.ensure_user(
                user.id,
                user.first_name,
                user.last_name,
                user.username,
                context.language,
            )
        except RepositoryError as e:
            logger.warning(f"Failed to save user {user.id}: {e}")

        try:
            if context.event is not None and await self.coordinator.handle(context.event):
                logger.debug(f"Update handled by dialog engine: {update.update_id}")
                if func is not None:
                    await func()
                return
        except Exception as e:
            logger.exception(e)
            return

        for handler in self.handlers:
            logger.debug(f"Try handler {handler}")
            try:
                if (
                    self._validate_admin(handler, user.id)
                    and await getattr(handler, action)(context)
                ):
                    logger.debug(f"Used handler {handler}")
                    if func is not None:
                        await func()
                    break
            except ValidationArgumentsError as e:
                logger.warning(f"Validation error: {e} {update.message}")
                help_key = handler.help()
                if update.effective_message and help_key:
                    await update.effective_message.reply_text(
                        context.t("usage", help=context.t(help_key))
                    )
                break
            except Exception as e:
                logger.exception(e)

    def _preferred_language(self, update: Update) -> str | None:
        if update.effective_user is None:
            return None
        user = self.repository.get_user(update.effective_user.id)
        return user.language_code if user else None

    def _validate_admin(self, handler: Handler, user_id: int):
        return not handler.only_for_admin or self.repository.is_admin(user_id)
