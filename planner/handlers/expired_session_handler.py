import logging

from planner.bot.context import CallbackBotContext
from planner.dialog.actions import dialog_of
from planner.handlers.handler import Handler

logger = logging.getLogger(__name__)

DEFAULT_COMMAND = "help"


class ExpiredSessionHandler(Handler):
    """Answers buttons of dialogs that are no longer active.

    Must be registered after every handler that owns callbacks."""

    async def callback(self, context: CallbackBotContext):
        kind = dialog_of(context.action) if context.action is not None else None
        dialog = context.coordinator.dialogs.get(kind) if kind else None

        logger.debug(
            f"Stale button {context.callback_query.data} "
            f"from {context.callback_query.from_user.id}"
        )
        await context.answer(
            context.t(
                "session_expired",
                command=dialog.entry_command if dialog else DEFAULT_COMMAND,
            ),
            show_alert=True,
        )
        return True
