import logging
from enum import StrEnum

from planner.data.repository import RepositoryError
from planner.dialog.actions import ChooseKey, KeyFromChart
from planner.dialog.dialog import Dialog
from planner.dialog.graph import Modality, StepGraph, StepSpec
from planner.dialog.outbound import Button, OutboundDirective
from planner.dialog.session import ChordEntryPayload, DialogKind, Session
from planner.dialog.step import StepContext, advance, terminate
from planner.helpers.chords import parse_chart
from planner.helpers.formats import format_chart
from planner.helpers.song_input import KEY_PATTERN

logger = logging.getLogger(__name__)

KEYS = ["C", "C#", "D", "Eb", "E", "F", "F#", "G", "Ab", "A", "Bb", "B"]
KEYS_PER_ROW = 4
DEFAULT_KEY = "C"


class ChordEntryStep(StrEnum):
    SELECT_KEY = "select_key"
    ENTER_CHART = "enter_chart"


class ChordEntryDialog(Dialog):
    kind = DialogKind.CHORD_ENTRY
    entry_command = "chords"

    def build_graph(self):
        return StepGraph(
            kind=self.kind,
            start=ChordEntryStep.SELECT_KEY,
            terminal=ChordEntryStep.ENTER_CHART,
            steps={
                ChordEntryStep.SELECT_KEY: StepSpec(
                    Modality.CALLBACK,
                    self._on_key,
                    accepts=(ChooseKey, KeyFromChart),
                    targets=frozenset({ChordEntryStep.ENTER_CHART}),
                    allow_back=False,
                ),
                ChordEntryStep.ENTER_CHART: StepSpec(
                    Modality.TEXT,
                    self._on_chart,
                ),
            },
        )

    async def _on_key(self, ctx: StepContext):
        payload: ChordEntryPayload = ctx.payload
        if self.repository.get_song(payload.song_id) is None:
            return terminate(OutboundDirective(text=self.t("song_not_found", ctx.language)))

        if isinstance(ctx.action, ChooseKey):
            if not KEY_PATTERN.match(ctx.action.key):
                return self.reprompt(ctx, "error_key")
            payload.key = ctx.action.key
        else:
            payload.key = None
        return advance(ChordEntryStep.ENTER_CHART)

    async def _on_chart(self, ctx: StepContext):
        payload: ChordEntryPayload = ctx.payload
        song = self.repository.get_song(payload.song_id)
        if song is None:
            return terminate(OutboundDirective(text=self.t("song_not_found", ctx.language)))

        chart_input = parse_chart(ctx.text or "")
        if not chart_input.content:
            return self.reprompt(ctx, "error_chart_empty")

        try:
            chart = await self.repository.add_chord_chart(
                song_id=song.id,
                key=payload.key or chart_input.key or DEFAULT_KEY,
                content=chart_input.content,
                capo=chart_input.capo,
                time_signature=chart_input.time_signature,
                created_by=ctx.session.owner_id,
            )
        except RepositoryError as e:
            logger.warning(f"Failed to save chord chart for {song.id}: {e}")
            return self.reprompt(ctx, "error_save")

        return terminate(
            OutboundDirective(
                text=self.t("chart_saved", ctx.language)
                + "\n\n"
                + format_chart(chart, song, self.texts, ctx.language),
            ),
            committed=True,
        )

    def render(self, session: Session, language: str) -> OutboundDirective:
        payload: ChordEntryPayload = session.payload  # type: ignore
        song = self.repository.get_song(payload.song_id)
        title = song.title if song else "?"

        if session.step == ChordEntryStep.SELECT_KEY:
            keyboard = [
                [Button(key, ChooseKey(key)) for key in KEYS[i : i + KEYS_PER_ROW]]
                for i in range(0, len(KEYS), KEYS_PER_ROW)
            ]
            keyboard.append([Button(self.t("button_key_from_chart", language), KeyFromChart())])
            keyboard.append(self.nav_line(session, language))
            return OutboundDirective(
                text=self.t("chord_select_key", language, title=title),
                keyboard=keyboard,
            )

        return OutboundDirective(
            text=self.t(
                "chord_enter_chart",
                language,
                title=title,
                chord_key=payload.key or self.t("key_from_chart", language),
            ),
            keyboard=[self.nav_line(session, language)],
        )
