from dataclasses import dataclass
from typing import Any

from telegram import CallbackQuery, Message, Update
from telegram.ext import ContextTypes, ExtBot

from planner.data.repository import Repository
from planner.dialog.coordinator import DialogCoordinator
from planner.dialog.events import CallbackEvent, Inbound
from planner.localization import Localization


@dataclass
class BotContext:
    repository: Repository

    bot: ExtBot[None]
    coordinator: DialogCoordinator
    texts: Localization


@dataclass
class BotActionContext(BotContext):
    update: Update
    tg_context: ContextTypes.DEFAULT_TYPE
    event: Inbound | None

    @property
    def language(self) -> str:
        if self.event is not None:
            return self.event.language
        user = self.update.effective_user
        return self.texts.language_of(user.language_code if user else None)

    def t(self, key: str, /, **kwargs):
        return self.texts.get(key, self.language, **kwargs)


@dataclass
class ChatBotContext(BotActionContext):
    message: Message


@dataclass
class CallbackBotContext(BotActionContext):
    callback_query: CallbackQuery
    # decoded callback data, None for unknown tokens
    action: Any = None
    answered: bool = False

    async def answer(self, text: str | None = None, show_alert: bool = False):
        """Answers the query once, later calls are ignored"""
        if self.answered or (
            isinstance(self.event, CallbackEvent) and self.event.answered
        ):
            return
        self.answered = True
        await self.callback_query.answer(text, show_alert=show_alert)
