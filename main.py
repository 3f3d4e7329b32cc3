import argparse
import logging
import os
from datetime import timedelta

from dotenv import load_dotenv

from planner.bot.bot import Bot
from planner.bot.telegram_io import TelegramRenderer
from planner.data.repository import JsonFileStorage, Repository
from planner.dialog.coordinator import DialogCoordinator
from planner.dialog.dialogs.chord_entry import ChordEntryDialog
from planner.dialog.dialogs.event_wizard import EventWizardDialog
from planner.dialog.dialogs.role_select import RoleSelectDialog
from planner.dialog.dialogs.song_add import SongAddDialog
from planner.dialog.dialogs.song_edit import SongEditDialog
from planner.dialog.session_store import SessionStore, SessionSweeper
from planner.handlers.assign_role_handler import AssignRoleHandler
from planner.handlers.cancel_handler import CancelHandler
from planner.handlers.chords_handler import ChordsHandler
from planner.handlers.events_handler import EventsHandler
from planner.handlers.expired_session_handler import ExpiredSessionHandler
from planner.handlers.handler import Handler
from planner.handlers.help_handler import HelpHandler
from planner.handlers.language_handler import LanguageHandler
from planner.handlers.my_roles_handler import MyRolesHandler
from planner.handlers.new_event_handler import NewEventHandler
from planner.handlers.register_handler import RegisterHandler
from planner.handlers.songs_handler import SongsHandler
from planner.handlers.start_handler import StartHandler
from planner.localization import Localization
from planner.logging.configure import configure_logging
from planner.metrics import MetricsEngine, NoopMetricsEngine, PrometheusMetricsEngine

logger = logging.getLogger(__name__)


def get_handlers() -> list[Handler]:
    handlers: list[Handler] = [
        StartHandler(),
        RegisterHandler(),
        MyRolesHandler(),
        AssignRoleHandler(),
        LanguageHandler(),
        NewEventHandler(),
        SongsHandler(),
        ChordsHandler(),
        EventsHandler(),
    ]
    handlers.append(HelpHandler(list(handlers)))
    handlers.append(CancelHandler())
    # owns every callback nobody else took
    handlers.append(ExpiredSessionHandler())
    return handlers


def parse_admin_ids(value: str | None) -> set[int]:
    return {int(part) for part in (value or "").split(",") if part.strip()}


def main():
    load_dotenv()

    parser = argparse.ArgumentParser("planner")
    parser.add_argument(
        "--prod",
        help="Use production environment",
        action="store_true",
    )
    parser.add_argument(
        "--log-file",
        help="Log to file",
    )
    parser.add_argument(
        "--debug",
        help="Debug mode",
        action="store_true",
    )
    parser.add_argument(
        "--metrics-port",
        help="Expose prometheus metrics on this port",
        type=int,
    )
    args = parser.parse_args()

    token = os.environ.get("TELEGRAM_BOT_TOKEN")
    assert token, "TELEGRAM_BOT_TOKEN is not set"

    configure_logging(token, args.log_file, args.debug, args.prod)

    metrics: MetricsEngine = NoopMetricsEngine()
    if args.metrics_port is not None:
        metrics = PrometheusMetricsEngine()
        metrics.start_server(args.metrics_port)
        logger.info(f"Metrics server started on port {args.metrics_port}")

    texts = Localization()
    repository = Repository(JsonFileStorage(os.environ.get("DB_PATH", "db.json")))

    store = SessionStore(
        ttl=timedelta(minutes=int(os.environ.get("SESSION_TTL_MINUTES", "10"))),
    )
    sweeper = SessionSweeper(
        store,
        timedelta(seconds=int(os.environ.get("SESSION_SWEEP_SECONDS", "60"))),
    )

    coordinator = DialogCoordinator(
        store,
        [
            EventWizardDialog(repository, texts),
            SongEditDialog(repository, texts),
            SongAddDialog(repository, texts),
            ChordEntryDialog(repository, texts),
            RoleSelectDialog(repository, texts),
        ],
        TelegramRenderer(),
        texts,
        metrics,
    )

    Bot(
        get_handlers(),
        repository,
        coordinator,
        texts,
        sweeper=sweeper,
        admin_ids=parse_admin_ids(os.environ.get("ADMIN_IDS")),
    ).start(
        token,
        drop_pending_updates=True,
        local_server=os.environ.get("TELEGRAM_API_HOST") if args.prod else None,
    )


if __name__ == "__main__":
    main()
