import logging

from planner.bot.context import CallbackBotContext
from planner.bot.telegram_io import build_markup
from planner.data.repository import RepositoryError
from planner.dialog.actions import SetLanguage
from planner.dialog.outbound import Button
from planner.handlers.command_handler import CommandHandler
from planner.handlers.handler import Handler

logger = logging.getLogger(__name__)


@CommandHandler("language")
class LanguageHandler(Handler):
    async def chat(self, context):
        keyboard = [
            [Button(context.texts.get("language_name", code), SetLanguage(code))]
            for code in context.texts.languages
        ]
        await context.message.reply_text(
            context.t("language_prompt"), reply_markup=build_markup(keyboard)
        )

    async def callback(self, context: CallbackBotContext):
        if not isinstance(context.action, SetLanguage):
            return False

        code = context.action.code
        if code not in context.texts.languages:
            await context.answer(context.t("miss_stale_button"))
            return True

        user_id = context.callback_query.from_user.id
        try:
            await context.repository.set_language(user_id, code)
        except RepositoryError as e:
            logger.warning(f"Failed to save language of {user_id}: {e}")
            await context.answer(context.t("error_save"))
            return True

        await context.callback_query.edit_message_text(
            context.texts.get("language_changed", code)
        )
        return True

    def help(self):
        return "help_language"
