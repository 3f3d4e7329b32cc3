import logging
from enum import StrEnum

from planner.data.repository import RepositoryError
from planner.dialog.dialog import Dialog
from planner.dialog.graph import Modality, StepGraph, StepSpec
from planner.dialog.outbound import OutboundDirective
from planner.dialog.session import DialogKind, Session, SongAddPayload
from planner.dialog.step import StepContext, terminate
from planner.helpers.formats import format_song_details
from planner.helpers.song_input import parse_song_line

logger = logging.getLogger(__name__)


class SongAddStep(StrEnum):
    ENTER_SONG = "enter_song"


class SongAddDialog(Dialog):
    kind = DialogKind.SONG_ADD
    entry_command = "songs"

    def build_graph(self):
        return StepGraph(
            kind=self.kind,
            start=SongAddStep.ENTER_SONG,
            terminal=SongAddStep.ENTER_SONG,
            steps={
                SongAddStep.ENTER_SONG: StepSpec(
                    Modality.TEXT,
                    self._on_song,
                    allow_back=False,
                ),
            },
        )

    def new_payload(self):
        return SongAddPayload()

    async def _on_song(self, ctx: StepContext):
        line = parse_song_line(ctx.text or "")
        if line is None:
            return self.reprompt(ctx, "error_song_format")

        try:
            song = await self.repository.create_or_update_song(
                line.title,
                line.key,
                line.tempo,
                created_by=ctx.session.owner_id,
            )
        except RepositoryError as e:
            logger.warning(f"Failed to save song {line.title}: {e}")
            return self.reprompt(ctx, "error_save")

        return terminate(
            OutboundDirective(
                text=self.t("song_saved", ctx.language)
                + "\n\n"
                + format_song_details(song, self.texts, ctx.language),
            ),
            committed=True,
        )

    def render(self, session: Session, language: str) -> OutboundDirective:
        return OutboundDirective(
            text=self.t("song_add_prompt", language),
            keyboard=[self.nav_line(session, language)],
        )
