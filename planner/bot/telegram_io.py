import logging

from telegram import Bot, InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.error import BadRequest

from planner.dialog.actions import encode_action
from planner.dialog.events import CallbackEvent, Inbound, TextEvent
from planner.dialog.outbound import Keyboard, OutboundDirective, Renderer
from planner.localization import Localization

logger = logging.getLogger(__name__)


def event_from_update(
    update: Update,
    texts: Localization,
    preferred_language: str | None = None,
) -> Inbound | None:
    """preferred_language is the one the user picked with /language"""
    user = update.effective_user
    chat = update.effective_chat
    if user is None or chat is None:
        return None

    language = texts.language_of(preferred_language or user.language_code)

    if update.callback_query is not None:
        query = update.callback_query
        return CallbackEvent(
            owner_id=user.id,
            chat_id=chat.id,
            message_id=query.message.message_id if query.message else None,
            language=language,
            token=query.data,
            callback_query_id=query.id,
        )

    if update.message is not None and update.message.text is not None:
        return TextEvent(
            owner_id=user.id,
            chat_id=chat.id,
            message_id=update.message.message_id,
            language=language,
            text=update.message.text,
        )

    return None


def build_markup(keyboard: Keyboard | None) -> InlineKeyboardMarkup | None:
    if not keyboard:
        return None
    return InlineKeyboardMarkup(
        [
            [
                InlineKeyboardButton(button.label, callback_data=encode_action(button.action))
                for button in line
            ]
            for line in keyboard
            if line
        ]
    )


class TelegramRenderer(Renderer):
    def __init__(self, bot: Bot | None = None):
        self.bot: Bot = bot  # type: ignore

    async def render(self, event: Inbound, directive: OutboundDirective):
        if isinstance(event, CallbackEvent):
            if not event.answered and event.callback_query_id:
                event.answered = True
                await self.bot.answer_callback_query(
                    event.callback_query_id,
                    text=directive.notice,
                )
        elif isinstance(event, TextEvent) and directive.notice:
            await self.bot.send_message(event.chat_id, directive.notice)

        if directive.text is None:
            return

        markup = build_markup(directive.keyboard)

        if (
            isinstance(event, CallbackEvent)
            and directive.edit
            and event.message_id is not None
        ):
            try:
                await self.bot.edit_message_text(
                    directive.text,
                    chat_id=event.chat_id,
                    message_id=event.message_id,
                    reply_markup=markup,
                )
                return
            except BadRequest as e:
                if "not modified" in str(e).lower():
                    return
                logger.warning(f"Failed to edit message {event.message_id}: {e}")

        await self.bot.send_message(event.chat_id, directive.text, reply_markup=markup)
