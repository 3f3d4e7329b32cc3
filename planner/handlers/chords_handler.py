from planner.bot.context import CallbackBotContext
from planner.bot.telegram_io import build_markup
from planner.dialog.actions import ChordAdd, ChordSongView, ChordView
from planner.dialog.outbound import Button, Keyboard
from planner.dialog.session import ChordEntryPayload, DialogKind
from planner.handlers.command_handler import CommandHandler
from planner.handlers.handler import Handler
from planner.helpers.formats import format_chart, format_song_label

MAX_SONGS = 30


@CommandHandler("chords")
class ChordsHandler(Handler):
    async def chat(self, context):
        songs = context.repository.songs_sorted()[:MAX_SONGS]
        if not songs:
            await context.message.reply_text(context.t("songs_empty"))
            return

        keyboard: Keyboard = [
            [Button(format_song_label(song), ChordSongView(song.id))] for song in songs
        ]
        await context.message.reply_text(
            context.t("chords_pick_song"),
            reply_markup=build_markup(keyboard),
        )

    async def callback(self, context: CallbackBotContext):
        match context.action:
            case ChordSongView(song_id=song_id):
                song = context.repository.get_song(song_id)
                if song is None:
                    await context.answer(context.t("song_not_found"))
                    return True

                charts = context.repository.charts_for_song(song_id)
                keyboard: Keyboard = [
                    [
                        Button(
                            chart.key + (f" (capo {chart.capo})" if chart.capo else ""),
                            ChordView(chart.id),
                        )
                    ]
                    for chart in charts
                ]
                keyboard.append([Button(context.t("button_add_chart"), ChordAdd(song.id))])
                await context.callback_query.edit_message_text(
                    context.t("chords_song_header", title=song.title, count=len(charts)),
                    reply_markup=build_markup(keyboard),
                )
            case ChordView(chart_id=chart_id):
                chart = context.repository.get_chart(chart_id)
                if chart is None:
                    await context.answer(context.t("chart_not_found"))
                    return True

                song = context.repository.get_song(chart.song_id)
                await context.callback_query.message.reply_text(
                    format_chart(chart, song, context.texts, context.language)
                )
            case ChordAdd(song_id=song_id):
                if context.repository.get_song(song_id) is None:
                    await context.answer(context.t("song_not_found"))
                    return True
                await context.coordinator.start(
                    context.event,
                    DialogKind.CHORD_ENTRY,
                    ChordEntryPayload(song_id=song_id),
                )
            case _:
                return False
        return True

    def help(self):
        return "help_chords"
