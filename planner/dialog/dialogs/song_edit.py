import logging
from enum import StrEnum

from planner.data.models.song import SongField
from planner.data.repository import RepositoryError
from planner.dialog.dialog import Dialog
from planner.dialog.graph import Modality, StepGraph, StepSpec
from planner.dialog.outbound import OutboundDirective
from planner.dialog.session import DialogKind, Session, SongEditPayload
from planner.dialog.step import StepContext, terminate
from planner.helpers.formats import format_song_details
from planner.helpers.song_input import parse_key, parse_tempo
from planner.helpers.validation import (
    Error,
    Validator,
    check,
    max_length,
    not_empty,
    try_get,
    validate,
)

logger = logging.getLogger(__name__)

# clears optional fields
CLEAR_VALUE = "-"


def _link() -> Validator:
    return check(lambda v: v.startswith(("http://", "https://")), "error_link")


FIELD_VALIDATORS: dict[SongField, list[Validator]] = {
    SongField.TITLE: [max_length(100)],
    SongField.ARTIST: [max_length(100)],
    SongField.KEY: [try_get(parse_key, "error_key")],
    SongField.TEMPO: [try_get(parse_tempo, "error_tempo")],
    SongField.YOUTUBE: [_link()],
    SongField.CHORDS: [_link()],
}


class SongEditStep(StrEnum):
    ENTER_VALUE = "enter_value"


class SongEditDialog(Dialog):
    """Edits one field of a song from the library"""

    kind = DialogKind.SONG_EDIT
    entry_command = "songs"

    def build_graph(self):
        return StepGraph(
            kind=self.kind,
            start=SongEditStep.ENTER_VALUE,
            terminal=SongEditStep.ENTER_VALUE,
            steps={
                SongEditStep.ENTER_VALUE: StepSpec(
                    Modality.TEXT,
                    self._on_value,
                    allow_back=False,
                ),
            },
        )

    async def _on_value(self, ctx: StepContext):
        payload: SongEditPayload = ctx.payload
        if self.repository.get_song(payload.song_id) is None:
            return terminate(OutboundDirective(text=self.t("song_not_found", ctx.language)))

        if payload.field != SongField.TITLE and ctx.text == CLEAR_VALUE:
            value = None
        else:
            value = validate(ctx.text, [not_empty(), *FIELD_VALIDATORS[payload.field]])
            if isinstance(value, Error):
                return self.reprompt(ctx, value.key)

        try:
            song = await self.repository.update_song_field(
                payload.song_id, payload.field, value
            )
        except RepositoryError as e:
            logger.warning(f"Failed to update song {payload.song_id}: {e}")
            return self.reprompt(ctx, "error_save")

        return terminate(
            OutboundDirective(
                text=self.t("song_updated", ctx.language)
                + "\n\n"
                + format_song_details(song, self.texts, ctx.language),
            ),
            committed=True,
        )

    def render(self, session: Session, language: str) -> OutboundDirective:
        payload: SongEditPayload = session.payload  # type: ignore
        song = self.repository.get_song(payload.song_id)
        return OutboundDirective(
            text=self.t(
                "song_edit_prompt",
                language,
                title=song.title if song else "?",
                field=self.t(f"field_{payload.field}", language),
            ),
            keyboard=[self.nav_line(session, language)],
        )
