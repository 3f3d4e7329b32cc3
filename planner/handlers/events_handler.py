import logging
from datetime import datetime, timezone

from planner.bot.context import CallbackBotContext
from planner.bot.telegram_io import build_markup
from planner.data.models.attendance import AttendanceStatus
from planner.data.models.event import Event
from planner.data.repository import Repository, RepositoryError
from planner.dialog.actions import (
    Attend,
    EventDelete,
    EventDeleteCancel,
    EventDeleteConfirm,
)
from planner.dialog.outbound import Button, Keyboard
from planner.handlers.command_handler import CommandHandler
from planner.handlers.handler import Handler
from planner.helpers.formats import format_lined_list
from planner.localization import Localization

logger = logging.getLogger(__name__)

UPCOMING_LIMIT = 5


def format_event_card(
    event: Event,
    repository: Repository,
    texts: Localization,
    language: str,
):
    local = event.local_time
    text = texts.get(
        "event_summary",
        language,
        title=event.title,
        date=f"{local:%d/%m/%Y}",
        time=f"{local:%H:%M}",
        location=event.location,
        description=event.description or "-",
    )

    songs = [
        song.title for _, song in repository.setlist(event.id) if song is not None
    ]
    if songs:
        text += "\n\n" + texts.get("setlist_header", language, count=len(songs))
        text += "\n" + format_lined_list([(i + 1, t) for i, t in enumerate(songs)])

    counts = repository.attendance_counts(event.id)
    text += "\n\n" + texts.get(
        "attendance_counts",
        language,
        yes=counts[AttendanceStatus.YES],
        no=counts[AttendanceStatus.NO],
        maybe=counts[AttendanceStatus.MAYBE],
    )
    return text


def attendance_keyboard(
    event: Event,
    texts: Localization,
    language: str,
    is_admin: bool = False,
) -> Keyboard:
    keyboard: Keyboard = [
        [
            Button(texts.get(f"button_{status.name.lower()}", language), Attend(event.id, status))
            for status in AttendanceStatus
        ]
    ]
    if is_admin:
        keyboard.append(
            [Button(texts.get("button_delete_event", language), EventDelete(event.id))]
        )
    return keyboard


@CommandHandler("events")
class EventsHandler(Handler):
    async def chat(self, context):
        events = context.repository.upcoming_events(
            datetime.now(timezone.utc), UPCOMING_LIMIT
        )
        if not events:
            await context.message.reply_text(context.t("events_none"))
            return

        is_admin = context.repository.is_admin(context.message.from_user.id)
        for event in events:
            await context.message.reply_text(
                format_event_card(event, context.repository, context.texts, context.language),
                reply_markup=build_markup(
                    attendance_keyboard(event, context.texts, context.language, is_admin)
                ),
            )

    async def callback(self, context: CallbackBotContext):
        match context.action:
            case Attend():
                await self._attend(context)
            case EventDelete(event_id=event_id):
                await self._confirm_delete(context, event_id)
            case EventDeleteConfirm(event_id=event_id):
                await self._delete(context, event_id)
            case EventDeleteCancel(event_id=event_id):
                await self._show_card(context, event_id)
            case _:
                return False
        return True

    async def _attend(self, context: CallbackBotContext):
        user_id = context.callback_query.from_user.id
        try:
            await context.repository.set_attendance(
                context.action.event_id,
                user_id,
                context.action.status,
                datetime.now(timezone.utc),
            )
        except RepositoryError as e:
            logger.warning(f"Failed to save attendance of {user_id}: {e}")
            await context.answer(context.t("event_not_found"))
            return

        await context.answer(context.t("attendance_saved"))
        await self._show_card(context, context.action.event_id)

    async def _show_card(self, context: CallbackBotContext, event_id: int):
        event = context.repository.get_event(event_id)
        if event is None:
            await context.answer(context.t("event_not_found"))
            return

        is_admin = context.repository.is_admin(context.callback_query.from_user.id)
        await context.callback_query.edit_message_text(
            format_event_card(event, context.repository, context.texts, context.language),
            reply_markup=build_markup(
                attendance_keyboard(event, context.texts, context.language, is_admin)
            ),
        )

    async def _confirm_delete(self, context: CallbackBotContext, event_id: int):
        if not await self._check_admin(context):
            return
        event = context.repository.get_event(event_id)
        if event is None:
            await context.answer(context.t("event_not_found"))
            return

        await context.callback_query.edit_message_text(
            context.t(
                "event_delete_confirm",
                title=event.title,
                date=f"{event.local_time:%d/%m/%Y %H:%M}",
            ),
            reply_markup=build_markup(
                [
                    [
                        Button(context.t("button_delete_yes"), EventDeleteConfirm(event_id)),
                        Button(context.t("button_delete_no"), EventDeleteCancel(event_id)),
                    ]
                ]
            ),
        )

    async def _delete(self, context: CallbackBotContext, event_id: int):
        if not await self._check_admin(context):
            return

        user_id = context.callback_query.from_user.id
        try:
            event = await context.repository.delete_event(event_id)
        except RepositoryError as e:
            logger.error(f"Failed to delete event {event_id}: {e}")
            await context.answer(context.t("error_save"))
            return

        if event is None:
            await context.answer(context.t("event_not_found"))
            return

        logger.info(f"Event {event_id} deleted by {user_id}")
        await context.callback_query.edit_message_text(
            context.t("event_deleted", title=event.title)
        )

    async def _check_admin(self, context: CallbackBotContext):
        if context.repository.is_admin(context.callback_query.from_user.id):
            return True
        await context.answer(context.t("admin_only"))
        return False

    def help(self):
        return "help_events"
