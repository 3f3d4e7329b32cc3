import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import StrEnum
from typing import Callable

from planner.data.models.event import EVENT_TZ, Event
from planner.data.repository import Repository, RepositoryError
from planner.dialog.actions import (
    AddNewSongs,
    ChooseDate,
    ChooseLocation,
    ChooseTemplate,
    ChooseTime,
    ConfirmEvent,
    CustomDate,
    CustomLocation,
    CustomTime,
    EditEvent,
    SongsDone,
    SongsSkip,
    ToggleSong,
)
from planner.dialog.dialog import CommitError, Dialog
from planner.dialog.graph import Modality, StepGraph, StepSpec, SubFlow
from planner.dialog.outbound import Button, Keyboard, OutboundDirective
from planner.dialog.session import (
    DialogKind,
    EventTemplate,
    EventWizardPayload,
    Session,
)
from planner.dialog.step import StepContext, advance, restart, stay, terminate
from planner.helpers.formats import format_lined_list, format_song_label
from planner.helpers.song_input import parse_song_lines
from planner.helpers.validation import Error, max_length, not_empty, try_get, validate
from planner.localization import Localization

logger = logging.getLogger(__name__)


class WizardStep(StrEnum):
    SELECT_TEMPLATE = "select_template"
    SELECT_DATE = "select_date"
    ENTER_DATE = "enter_date"
    SELECT_TIME = "select_time"
    ENTER_TIME = "enter_time"
    SELECT_LOCATION = "select_location"
    ENTER_LOCATION = "enter_location"
    ADD_SONGS = "add_songs"
    ENTER_SONGS = "enter_songs"
    CONFIRM = "confirm"


@dataclass(frozen=True)
class TemplateDefaults:
    title: str
    default_time: str
    location: str
    description: str


TEMPLATES = {
    EventTemplate.SUNDAY: TemplateDefaults(
        title="Serviciu",
        default_time="08:30",
        location="Biserică - sala mică",
        description="Serviciu de închinare",
    ),
    EventTemplate.REHEARSAL: TemplateDefaults(
        title="Repetiție",
        default_time="19:00",
        location="Biserică - sala mică",
        description="Repetiție cu grupul de laudă",
    ),
}

COMMON_TIMES = [
    "08:00", "09:00", "09:30", "10:00", "10:30", "11:00", "14:00",
    "15:00", "16:00", "17:00", "18:00", "18:30", "19:00", "19:30",
]  # fmt: skip

DATE_BUTTONS_DAYS = 14
DATE_BUTTONS_PER_ROW = 3
TIME_BUTTONS_PER_ROW = 4
COMMON_LOCATIONS_LIMIT = 6
RECENT_SONGS_LIMIT = 10
MAX_LOCATION_LENGTH = 100

TIME_PATTERN = re.compile(r"^\d{2}:\d{2}$")

DONE_WORDS = {"done", "gata"}
SKIP_WORDS = {"skip", "sari"}

type Today = Callable[[], date]


def local_today() -> date:
    return datetime.now(EVENT_TZ).date()


def parse_date(text: str) -> date:
    return datetime.strptime(text.strip(), "%d/%m/%Y").date()


def parse_time(text: str) -> str:
    text = text.strip()
    if not TIME_PATTERN.match(text):
        raise ValueError(f"Expected HH:MM, got {text!r}")
    return datetime.strptime(text, "%H:%M").strftime("%H:%M")


def rows[T](items: list[T], size: int) -> list[list[T]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


class EventWizardDialog(Dialog):
    kind = DialogKind.EVENT_WIZARD
    entry_command = "newevent"

    def __init__(
        self,
        repository: Repository,
        texts: Localization,
        today: Today = local_today,
    ):
        self._today = today
        super().__init__(repository, texts)

    def build_graph(self):
        S = WizardStep
        return StepGraph(
            kind=self.kind,
            start=S.SELECT_TEMPLATE,
            terminal=S.CONFIRM,
            steps={
                S.SELECT_TEMPLATE: StepSpec(
                    Modality.CALLBACK,
                    self._on_template,
                    accepts=(ChooseTemplate,),
                    targets=frozenset({S.SELECT_DATE}),
                    allow_back=False,
                ),
                S.SELECT_DATE: StepSpec(
                    Modality.CALLBACK,
                    self._on_date,
                    accepts=(ChooseDate, CustomDate),
                    targets=frozenset({S.SELECT_TIME, S.ENTER_DATE}),
                ),
                S.ENTER_DATE: StepSpec(
                    Modality.TEXT,
                    self._on_date_text,
                    targets=frozenset({S.SELECT_TIME}),
                ),
                S.SELECT_TIME: StepSpec(
                    Modality.CALLBACK,
                    self._on_time,
                    accepts=(ChooseTime, CustomTime),
                    targets=frozenset({S.SELECT_LOCATION, S.ENTER_TIME}),
                ),
                S.ENTER_TIME: StepSpec(
                    Modality.TEXT,
                    self._on_time_text,
                    targets=frozenset({S.SELECT_LOCATION}),
                ),
                S.SELECT_LOCATION: StepSpec(
                    Modality.CALLBACK,
                    self._on_location,
                    accepts=(ChooseLocation, CustomLocation),
                    targets=frozenset({S.ADD_SONGS, S.ENTER_LOCATION}),
                ),
                S.ENTER_LOCATION: StepSpec(
                    Modality.TEXT,
                    self._on_location_text,
                    targets=frozenset({S.ADD_SONGS}),
                ),
                S.ADD_SONGS: StepSpec(
                    Modality.BOTH,
                    self._on_add_songs,
                    accepts=(AddNewSongs,),
                    targets=frozenset({S.ENTER_SONGS}),
                ),
                S.ENTER_SONGS: StepSpec(
                    Modality.TEXT,
                    self._on_enter_songs,
                    targets=frozenset({S.CONFIRM}),
                ),
                S.CONFIRM: StepSpec(
                    Modality.CALLBACK,
                    self._on_confirm,
                    accepts=(ConfirmEvent, EditEvent),
                ),
            },
            subflows=[
                SubFlow(
                    accepts=(ToggleSong, SongsDone, SongsSkip),
                    handler=self._on_song_selection,
                    steps=frozenset({S.ADD_SONGS, S.ENTER_SONGS}),
                    targets=frozenset({S.CONFIRM}),
                ),
            ],
        )

    def new_payload(self):
        return EventWizardPayload()

    # step handlers

    async def _on_template(self, ctx: StepContext):
        payload: EventWizardPayload = ctx.payload
        template = ctx.action.template
        defaults = TEMPLATES[template]

        payload.template = template
        payload.title = defaults.title
        payload.default_time = defaults.default_time
        payload.description = defaults.description
        payload.location = defaults.location
        payload.location_options = []
        return advance(WizardStep.SELECT_DATE)

    async def _on_date(self, ctx: StepContext):
        if isinstance(ctx.action, CustomDate):
            return advance(WizardStep.ENTER_DATE)

        ctx.payload.day = ctx.action.day
        return advance(WizardStep.SELECT_TIME)

    async def _on_date_text(self, ctx: StepContext):
        result = validate(
            ctx.text,
            [not_empty(), try_get(parse_date, "error_date_format")],
        )
        if isinstance(result, Error):
            return self.reprompt(ctx, result.key)

        ctx.payload.day = result
        return advance(WizardStep.SELECT_TIME)

    async def _on_time(self, ctx: StepContext):
        if isinstance(ctx.action, CustomTime):
            return advance(WizardStep.ENTER_TIME)
        return self._set_time(ctx, ctx.action.time)

    async def _on_time_text(self, ctx: StepContext):
        return self._set_time(ctx, ctx.text)

    def _set_time(self, ctx: StepContext, value: str | None):
        result = validate(value, [not_empty(), try_get(parse_time, "error_time_format")])
        if isinstance(result, Error):
            return self.reprompt(ctx, result.key)

        ctx.payload.time = result
        ctx.payload.location_options = self._location_options(ctx.payload)
        return advance(WizardStep.SELECT_LOCATION)

    def _location_options(self, payload: EventWizardPayload) -> list[str]:
        options: list[str] = []
        if payload.template is not None:
            options.append(TEMPLATES[payload.template].location)
        for location in self.repository.common_locations(COMMON_LOCATIONS_LIMIT):
            if location not in options:
                options.append(location)
        return options

    async def _on_location(self, ctx: StepContext):
        if isinstance(ctx.action, CustomLocation):
            return advance(WizardStep.ENTER_LOCATION)

        options = ctx.payload.location_options
        index = ctx.action.index
        if not 0 <= index < len(options):
            return stay(
                OutboundDirective(notice=self.t("miss_stale_button", ctx.language))
            )

        ctx.payload.location = options[index]
        return advance(WizardStep.ADD_SONGS)

    async def _on_location_text(self, ctx: StepContext):
        result = validate(ctx.text, [not_empty(), max_length(MAX_LOCATION_LENGTH)])
        if isinstance(result, Error):
            return self.reprompt(ctx, result.key)

        ctx.payload.location = result
        return advance(WizardStep.ADD_SONGS)

    async def _on_add_songs(self, ctx: StepContext):
        if isinstance(ctx.action, AddNewSongs):
            return advance(WizardStep.ENTER_SONGS)

        added = await self._add_song_lines(ctx)
        if isinstance(added, Error):
            return self.reprompt(ctx, added.key)

        directive = self.render(ctx.session, ctx.language)
        directive.text = (
            self.t("songs_added", ctx.language, count=added) + "\n\n" + directive.text
        )
        return stay(directive)

    async def _on_enter_songs(self, ctx: StepContext):
        word = (ctx.text or "").casefold()
        if word in DONE_WORDS:
            return advance(WizardStep.CONFIRM)
        if word in SKIP_WORDS:
            ctx.payload.song_ids.clear()
            return advance(WizardStep.CONFIRM)

        added = await self._add_song_lines(ctx)
        if isinstance(added, Error):
            return self.reprompt(ctx, added.key)
        return advance(WizardStep.CONFIRM)

    async def _add_song_lines(self, ctx: StepContext) -> int | Error:
        songs = parse_song_lines(ctx.text or "")
        if not songs:
            return Error("error_song_format")

        for line in songs:
            try:
                song = await self.repository.create_or_update_song(
                    line.title,
                    line.key,
                    line.tempo,
                    created_by=ctx.session.owner_id,
                )
            except RepositoryError as e:
                logger.warning(f"Failed to save song {line.title}: {e}")
                return Error("error_save")
            if song.id not in ctx.payload.song_ids:
                ctx.payload.song_ids.append(song.id)
        return len(songs)

    async def _on_song_selection(self, ctx: StepContext):
        payload: EventWizardPayload = ctx.payload

        match ctx.action:
            case ToggleSong(song_id=song_id):
                song = self.repository.get_song(song_id)
                if song is None:
                    # deleted after it was selected
                    if song_id in payload.song_ids:
                        payload.song_ids.remove(song_id)
                    return stay(
                        OutboundDirective(notice=self.t("song_not_found", ctx.language))
                    )

                if song_id in payload.song_ids:
                    payload.song_ids.remove(song_id)
                    notice = self.t("song_removed", ctx.language, title=song.title)
                else:
                    payload.song_ids.append(song_id)
                    notice = self.t("song_selected", ctx.language, title=song.title)

                if ctx.session.step == WizardStep.ADD_SONGS:
                    directive = self.render(ctx.session, ctx.language)
                    directive.notice = notice
                    return stay(directive)
                return stay(OutboundDirective(notice=notice))
            case SongsSkip():
                payload.song_ids.clear()
                return advance(WizardStep.CONFIRM)
            case _:
                return advance(WizardStep.CONFIRM)

    async def _on_confirm(self, ctx: StepContext):
        if isinstance(ctx.action, EditEvent):
            ctx.session.payload = self.new_payload()
            return restart(WizardStep.SELECT_TEMPLATE)

        try:
            event = await self._commit(ctx)
        except CommitError as e:
            return self.reprompt(ctx, e.message_key)

        return terminate(
            OutboundDirective(
                text=self.t("event_created", ctx.language)
                + "\n\n"
                + self._summary(ctx.payload, ctx.language),
            ),
            committed=True,
        )

    async def _commit(self, ctx: StepContext) -> Event:
        payload: EventWizardPayload = ctx.payload
        if not payload.title or not payload.location or payload.day is None:
            raise CommitError("error_event_incomplete")

        try:
            date_time = datetime.strptime(
                f"{payload.day.isoformat()} {payload.time}", "%Y-%m-%d %H:%M"
            ).replace(tzinfo=EVENT_TZ)
        except ValueError as e:
            logger.warning(f"Invalid event date: {e}")
            raise CommitError("error_event_datetime") from e

        try:
            return await self.repository.create_event(
                title=payload.title,
                date_time=date_time,
                location=payload.location,
                description=payload.description,
                song_ids=[
                    i for i in payload.song_ids if self.repository.get_song(i) is not None
                ],
                created_by=ctx.session.owner_id,
            )
        except (RepositoryError, ValueError) as e:
            logger.error(f"Failed to create event: {e}")
            raise CommitError("error_event_save") from e

    # rendering

    def render(self, session: Session, language: str) -> OutboundDirective:
        payload: EventWizardPayload = session.payload  # type: ignore
        keyboard: Keyboard = []

        match session.step:
            case WizardStep.SELECT_TEMPLATE:
                text = self.t("wizard_select_template", language)
                keyboard = [
                    [Button(self.t(f"template_{t}", language), ChooseTemplate(t))]
                    for t in EventTemplate
                ]
            case WizardStep.SELECT_DATE:
                text = self.t("wizard_select_date", language, title=payload.title)
                keyboard = self._date_keyboard(language)
            case WizardStep.ENTER_DATE:
                text = self.t("wizard_enter_date", language)
            case WizardStep.SELECT_TIME:
                text = self.t("wizard_select_time", language, date=self._date(payload))
                keyboard = self._time_keyboard(payload, language)
            case WizardStep.ENTER_TIME:
                text = self.t("wizard_enter_time", language)
            case WizardStep.SELECT_LOCATION:
                text = self.t("wizard_select_location", language)
                keyboard = [
                    [Button(f"📍 {location}", ChooseLocation(i))]
                    for i, location in enumerate(payload.location_options)
                ]
                keyboard.append(
                    [Button(self.t("button_custom_location", language), CustomLocation())]
                )
            case WizardStep.ENTER_LOCATION:
                text = self.t("wizard_enter_location", language)
            case WizardStep.ADD_SONGS:
                text = self.t(
                    "wizard_add_songs", language, count=len(payload.song_ids)
                )
                keyboard = self._songs_keyboard(payload, language)
            case WizardStep.ENTER_SONGS:
                text = self.t("wizard_enter_songs", language)
            case WizardStep.CONFIRM:
                text = (
                    self.t("wizard_confirm", language)
                    + "\n\n"
                    + self._summary(payload, language)
                )
                keyboard = [
                    [Button(self.t("button_confirm", language), ConfirmEvent())],
                    [Button(self.t("button_edit", language), EditEvent())],
                ]
            case _:
                raise ValueError(f"Unknown wizard step {session.step}")

        keyboard.append(self.nav_line(session, language))
        return OutboundDirective(text=text, keyboard=keyboard)

    def _date_keyboard(self, language: str) -> Keyboard:
        weekdays = self.t("weekdays_short", language).split(",")
        today = self._today()
        buttons = [
            Button(f"{weekdays[day.weekday()]} {day:%d/%m}", ChooseDate(day))
            for day in (today + timedelta(days=i) for i in range(DATE_BUTTONS_DAYS))
        ]
        keyboard = rows(buttons, DATE_BUTTONS_PER_ROW)
        keyboard.append([Button(self.t("button_custom_date", language), CustomDate())])
        return keyboard

    def _time_keyboard(self, payload: EventWizardPayload, language: str) -> Keyboard:
        times = list(COMMON_TIMES)
        if payload.default_time and payload.default_time not in times:
            times.insert(0, payload.default_time)

        buttons = [
            Button(("⭐ " if t == payload.default_time else "") + t, ChooseTime(t))
            for t in times
        ]
        keyboard = rows(buttons, TIME_BUTTONS_PER_ROW)
        keyboard.append([Button(self.t("button_custom_time", language), CustomTime())])
        return keyboard

    def _songs_keyboard(self, payload: EventWizardPayload, language: str) -> Keyboard:
        shown = [self.repository.get_song(i) for i in payload.song_ids]
        songs = [s for s in shown if s is not None]
        for song in self.repository.recent_songs(RECENT_SONGS_LIMIT):
            if song.id not in payload.song_ids:
                songs.append(song)

        keyboard: Keyboard = [
            [
                Button(
                    format_song_label(song, song.id in payload.song_ids),
                    ToggleSong(song.id),
                )
            ]
            for song in songs
        ]

        actions_line = []
        if payload.song_ids:
            actions_line.append(Button(self.t("button_songs_done", language), SongsDone()))
        actions_line.append(Button(self.t("button_songs_skip", language), SongsSkip()))
        keyboard.append(actions_line)
        keyboard.append([Button(self.t("button_songs_new", language), AddNewSongs())])
        return keyboard

    def _date(self, payload: EventWizardPayload):
        return f"{payload.day:%d/%m/%Y}" if payload.day else "-"

    def _summary(self, payload: EventWizardPayload, language: str) -> str:
        summary = self.t(
            "event_summary",
            language,
            title=payload.title or "-",
            date=self._date(payload),
            time=payload.time or "-",
            location=payload.location or "-",
            description=payload.description or "-",
        )

        songs = [
            (i + 1, song.title)
            for i, song in enumerate(
                s
                for s in (self.repository.get_song(i) for i in payload.song_ids)
                if s is not None
            )
        ]
        if not songs:
            return summary + "\n\n" + self.t("setlist_empty", language)
        return (
            summary
            + "\n\n"
            + self.t("setlist_header", language, count=len(songs))
            + "\n"
            + format_lined_list(songs)
        )
