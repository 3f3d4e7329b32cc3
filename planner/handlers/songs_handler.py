import logging
import math

from planner.bot.context import CallbackBotContext
from planner.bot.telegram_io import build_markup
from planner.data.models.song import Song, SongField
from planner.dialog.actions import (
    SongAddNew,
    SongDelete,
    SongDeleteConfirm,
    SongEditField,
    SongEditMenu,
    SongsPage,
    SongView,
)
from planner.dialog.outbound import Button, Keyboard
from planner.dialog.session import DialogKind, SongAddPayload, SongEditPayload
from planner.handlers.command_handler import CommandHandler
from planner.handlers.handler import Handler
from planner.helpers.formats import format_song_details, format_song_label

logger = logging.getLogger(__name__)

PAGE_SIZE = 10


@CommandHandler("songs", arguments_template=r"(?P<query>.*)")
class SongsHandler(Handler):
    """Song library: listing, search, details, editing and deletion"""

    async def chat(self, context, query: str | None = None):
        if query:
            songs = context.repository.search_songs(query)
            text = context.t("songs_search_header", query=query, count=len(songs))
            keyboard = self._songs_keyboard(context, songs)
        else:
            text, keyboard = self._page(context, 0)

        await context.message.reply_text(text, reply_markup=build_markup(keyboard))

    async def callback(self, context: CallbackBotContext):
        match context.action:
            case SongsPage(page=page):
                text, keyboard = self._page(context, page)
                await self._edit(context, text, keyboard)
            case SongView(song_id=song_id):
                await self._show_song(context, song_id)
            case SongEditMenu(song_id=song_id):
                if not await self._check_admin(context):
                    return True
                song = context.repository.get_song(song_id)
                if song is None:
                    await context.answer(context.t("song_not_found"))
                    return True
                await self._edit(
                    context,
                    context.t("song_edit_menu", title=song.title),
                    self._edit_keyboard(context, song),
                )
            case SongEditField(song_id=song_id, field=field):
                if not await self._check_admin(context):
                    return True
                if context.repository.get_song(song_id) is None:
                    await context.answer(context.t("song_not_found"))
                    return True
                await context.coordinator.start(
                    context.event,
                    DialogKind.SONG_EDIT,
                    SongEditPayload(song_id=song_id, field=field),
                )
            case SongDelete(song_id=song_id):
                if not await self._check_admin(context):
                    return True
                await self._delete(context, song_id, confirmed=False)
            case SongDeleteConfirm(song_id=song_id):
                if not await self._check_admin(context):
                    return True
                await self._delete(context, song_id, confirmed=True)
            case SongAddNew():
                if not await self._check_admin(context):
                    return True
                await context.coordinator.start(
                    context.event,
                    DialogKind.SONG_ADD,
                    SongAddPayload(),
                )
            case _:
                return False
        return True

    def _page(self, context, page: int) -> tuple[str, Keyboard]:
        songs = context.repository.songs_sorted()
        if not songs:
            return context.t("songs_empty"), [
                [Button(context.t("button_add_song"), SongAddNew())]
            ]

        pages = math.ceil(len(songs) / PAGE_SIZE)
        page = min(max(page, 0), pages - 1)
        keyboard = self._songs_keyboard(
            context, songs[page * PAGE_SIZE : (page + 1) * PAGE_SIZE]
        )

        navigation = []
        if page > 0:
            navigation.append(Button(context.t("button_prev"), SongsPage(page - 1)))
        if page < pages - 1:
            navigation.append(Button(context.t("button_next"), SongsPage(page + 1)))
        keyboard.insert(len(keyboard) - 1, navigation)

        text = context.t(
            "songs_list_header", count=len(songs), page=page + 1, pages=pages
        )
        return text, keyboard

    def _songs_keyboard(self, context, songs: list[Song]) -> Keyboard:
        keyboard: Keyboard = [
            [Button(format_song_label(song), SongView(song.id))] for song in songs
        ]
        keyboard.append([Button(context.t("button_add_song"), SongAddNew())])
        return keyboard

    def _edit_keyboard(self, context, song: Song) -> Keyboard:
        keyboard: Keyboard = [
            [Button(context.t(f"field_{field}"), SongEditField(song.id, field))]
            for field in SongField
        ]
        keyboard.append([Button(context.t("button_back"), SongView(song.id))])
        return keyboard

    async def _show_song(self, context: CallbackBotContext, song_id: int):
        song = context.repository.get_song(song_id)
        if song is None:
            await context.answer(context.t("song_not_found"))
            return

        keyboard: Keyboard = [
            [
                Button(context.t("button_edit_song"), SongEditMenu(song.id)),
                Button(context.t("button_delete_song"), SongDelete(song.id)),
            ],
            [Button(context.t("button_back_to_list"), SongsPage(0))],
        ]
        await self._edit(
            context,
            format_song_details(song, context.texts, context.language),
            keyboard,
        )

    async def _delete(self, context: CallbackBotContext, song_id: int, confirmed: bool):
        song = context.repository.get_song(song_id)
        if song is None:
            await context.answer(context.t("song_not_found"))
            return

        usage = context.repository.song_usage(song_id)
        if usage > 0 and not confirmed:
            await self._edit(
                context,
                context.t("song_delete_confirm", title=song.title, count=usage),
                [
                    [Button(context.t("button_delete_yes"), SongDeleteConfirm(song.id))],
                    [Button(context.t("button_back"), SongView(song.id))],
                ],
            )
            return

        await context.repository.delete_song(song_id)
        logger.info(f"Song {song_id} deleted by {context.callback_query.from_user.id}")
        text, keyboard = self._page(context, 0)
        await self._edit(context, context.t("song_deleted") + "\n\n" + text, keyboard)

    async def _check_admin(self, context: CallbackBotContext):
        if context.repository.is_admin(context.callback_query.from_user.id):
            return True
        await context.answer(context.t("admin_only"))
        return False

    async def _edit(self, context: CallbackBotContext, text: str, keyboard: Keyboard):
        await context.callback_query.edit_message_text(
            text, reply_markup=build_markup(keyboard)
        )

    def help(self):
        return "help_songs"
