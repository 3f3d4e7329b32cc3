import datetime
import json
import logging
from abc import abstractmethod
from collections import Counter
from copy import deepcopy
from enum import Enum
from typing import Any, Optional

import aiofiles
import aiofiles.os

from planner.data.models.attendance import Attendance, AttendanceStatus
from planner.data.models.chord_chart import ChordChart, ChordChartFormat
from planner.data.models.event import Event, SetListItem, SetListItemType
from planner.data.models.role import Role, UserRole
from planner.data.models.song import Song, SongField
from planner.data.models.user import User

logger = logging.getLogger(__name__)

DEFAULT_ROLES = [
    ("Vocals", "🎤", "Lead and backing vocals"),
    ("Guitar", "🎸", "Acoustic and electric guitar"),
    ("Bass", "🎸", "Bass guitar"),
    ("Drums", "🥁", "Drums"),
    ("Percussion", "🪘", "Percussion instruments"),
    ("Keyboard", "🎹", "Piano and keyboards"),
    ("Sound Tech", "🎧", "Sound mixing and audio"),
    ("Media", "📹", "Visuals and streaming"),
    ("Prayer", "🙏", "Prayer team"),
]


class RepositoryError(Exception):
    pass


class Storage:
    @abstractmethod
    async def read_dict(self) -> dict[str, Any]:
        pass

    @abstractmethod
    async def write_dict(self, data: dict[str, Any]):
        pass


class JsonEncoder(json.JSONEncoder):
    def default(self, o: Any) -> Any:
        if isinstance(o, datetime.datetime):
            return o.timestamp()
        elif isinstance(o, datetime.date):
            return o.isoformat()
        elif isinstance(o, Enum):
            return o.value
        try:
            iterable = iter(o)
        except TypeError:
            pass
        else:
            return list(iterable)
        return super().default(o)


class JsonFileStorage(Storage):
    def __init__(self, path: str):
        self.path = path

    async def read_dict(self):
        if not await aiofiles.os.path.exists(self.path):
            return {}

        async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
            data = await f.read()

        if data.strip() == "":
            return {}
        return json.loads(data)

    async def write_dict(self, data):
        try:
            data = json.dumps(
                data,
                sort_keys=True,
                indent=4,
                ensure_ascii=False,
                cls=JsonEncoder,
            )
            async with aiofiles.open(self.path, "w", encoding="utf-8") as f:
                await f.write(data)
        except (TypeError, ValueError, OSError) as e:
            raise RepositoryError(f"Failed to write {self.path}") from e


# keeps the last n distinct values, most recent first
def _recent_distinct[T](values: list[T], n: int) -> list[T]:
    result: list[T] = []
    for value in reversed(values):
        if value not in result:
            result.append(value)
        if len(result) >= n:
            break
    return result


class Repository:
    def __init__(self, storage: Storage):
        self._storage = storage

        from planner.data.models.db import Database

        self.db = Database()

    async def migrate(self):
        data = await self._storage.read_dict()
        migrated_data = self._migrate(data)

        from planner.data.models.db import parse_from_dict

        self.db = parse_from_dict(migrated_data)
        await self.save()

    async def save(self):
        from planner.data.models.db import serialize_to_dict

        await self._storage.write_dict(serialize_to_dict(self.db))

    def is_admin(self, user_id: int):
        return user_id in self.db.admin_ids

    # users

    def get_user(self, user_id: int) -> Optional[User]:
        return next((u for u in self.db.users if u.id == user_id), None)

    async def ensure_user(
        self,
        user_id: int,
        first_name: str | None = None,
        last_name: str | None = None,
        username: str | None = None,
        language_code: str | None = None,
    ) -> User:
        user = self.get_user(user_id)
        changed = user is None
        if user is None:
            # the client language is only a default, /language overrides it
            user = User(id=user_id)
            if language_code:
                user.language_code = language_code
            self.db.users.append(user)

        changed |= (
            user.first_name,
            user.last_name,
            user.username,
        ) != (first_name, last_name, username)
        user.first_name = first_name
        user.last_name = last_name
        user.username = username

        if changed:
            await self.save()
        return user

    def find_user_by_username(self, username: str) -> Optional[User]:
        username = username.strip().lstrip("@").casefold()
        return next(
            (
                u
                for u in self.db.users
                if u.username and u.username.casefold() == username
            ),
            None,
        )

    async def set_language(self, user_id: int, language_code: str) -> User:
        user = self.get_user(user_id)
        if user is None:
            raise RepositoryError(f"User {user_id} not found")

        previous = user.language_code
        user.language_code = language_code
        try:
            await self.save()
        except RepositoryError:
            user.language_code = previous
            raise
        return user

    # roles

    def roles_sorted(self) -> list[Role]:
        return sorted(self.db.roles, key=lambda r: (r.display_order, r.id))

    def get_role(self, role_id: int) -> Optional[Role]:
        return next((r for r in self.db.roles if r.id == role_id), None)

    def find_role_by_name(self, name: str) -> Optional[Role]:
        name = name.strip().casefold()
        return next((r for r in self.db.roles if r.name.casefold() == name), None)

    def user_role_ids(self, user_id: int) -> list[int]:
        return [ur.role_id for ur in self.db.user_roles if ur.user_id == user_id]

    def user_roles(self, user_id: int) -> list[Role]:
        ids = set(self.user_role_ids(user_id))
        return [r for r in self.roles_sorted() if r.id in ids]

    async def set_user_roles(
        self,
        user_id: int,
        role_ids: list[int],
        now: datetime.datetime,
    ):
        """Replaces the roles of a user, keeping the assignment time of the
        roles that stay"""
        missing = [i for i in role_ids if self.get_role(i) is None]
        if missing:
            raise RepositoryError(f"Roles not found: {missing}")

        snapshot = list(self.db.user_roles)
        kept = {
            ur.role_id: ur
            for ur in self.db.user_roles
            if ur.user_id == user_id and ur.role_id in role_ids
        }
        self.db.user_roles = [
            ur for ur in self.db.user_roles if ur.user_id != user_id
        ]
        self.db.user_roles.extend(
            kept.get(role_id) or UserRole(user_id, role_id, now)
            for role_id in dict.fromkeys(role_ids)
        )

        try:
            await self.save()
        except RepositoryError:
            self.db.user_roles = snapshot
            raise

    async def assign_role(
        self,
        user_id: int,
        role_id: int,
        now: datetime.datetime,
    ) -> bool:
        """Returns False when the user already has the role"""
        if self.get_role(role_id) is None:
            raise RepositoryError(f"Role {role_id} not found")
        if role_id in self.user_role_ids(user_id):
            return False

        user_role = UserRole(user_id, role_id, now)
        self.db.user_roles.append(user_role)
        try:
            await self.save()
        except RepositoryError:
            self.db.user_roles.remove(user_role)
            raise
        return True

    # songs

    def get_song(self, song_id: int) -> Optional[Song]:
        return next((s for s in self.db.songs if s.id == song_id), None)

    def find_song_by_title(self, title: str) -> Optional[Song]:
        title = title.strip().casefold()
        return next((s for s in self.db.songs if s.title.casefold() == title), None)

    def search_songs(self, query: str) -> list[Song]:
        query = query.strip().casefold()
        return [
            s
            for s in self.db.songs
            if query in s.title.casefold()
            or (s.artist is not None and query in s.artist.casefold())
        ]

    def songs_sorted(self) -> list[Song]:
        return sorted(self.db.songs, key=lambda s: s.title.casefold())

    def recent_songs(self, limit: int = 10) -> list[Song]:
        used_ids = [
            item.song_id
            for item in sorted(
                self.db.setlist_items,
                key=lambda i: (i.event_id, i.order_index),
            )
            if item.song_id is not None
        ]
        ids = _recent_distinct(used_ids, limit)
        for song in reversed(self.db.songs):
            if len(ids) >= limit:
                break
            if song.id not in ids:
                ids.append(song.id)
        return [s for s in (self.get_song(i) for i in ids) if s is not None]

    async def create_or_update_song(
        self,
        title: str,
        key: str | None = None,
        tempo: int | None = None,
        created_by: int | None = None,
    ) -> Song:
        """Finds a song by case-insensitive title and fills in its empty
        fields, or creates a new one"""
        song = self.find_song_by_title(title)
        if song is not None:
            changed = False
            if key and not song.key:
                song.key = key
                changed = True
            if tempo and not song.tempo:
                song.tempo = tempo
                changed = True
            if changed:
                await self.save()
            return song

        song = Song(
            id=max((s.id for s in self.db.songs), default=0) + 1,
            title=title.strip(),
            key=key,
            tempo=tempo,
            created_by=created_by,
        )
        self.db.songs.append(song)
        try:
            await self.save()
        except RepositoryError:
            self.db.songs.remove(song)
            raise
        return song

    async def update_song_field(self, song_id: int, field: SongField, value: Any):
        song = self.get_song(song_id)
        if song is None:
            raise RepositoryError(f"Song {song_id} not found")

        attribute = {
            SongField.TITLE: "title",
            SongField.ARTIST: "artist",
            SongField.KEY: "key",
            SongField.TEMPO: "tempo",
            SongField.YOUTUBE: "youtube_url",
            SongField.CHORDS: "chord_sheet_url",
        }[field]

        old_value = getattr(song, attribute)
        setattr(song, attribute, value)
        try:
            await self.save()
        except RepositoryError:
            setattr(song, attribute, old_value)
            raise
        return song

    def song_usage(self, song_id: int) -> int:
        return sum(1 for item in self.db.setlist_items if item.song_id == song_id)

    async def delete_song(self, song_id: int) -> bool:
        song = self.get_song(song_id)
        if song is None:
            return False

        self.db.songs.remove(song)
        self.db.setlist_items = [
            i for i in self.db.setlist_items if i.song_id != song_id
        ]
        self.db.chord_charts = [
            c for c in self.db.chord_charts if c.song_id != song_id
        ]
        await self.save()
        return True

    # events

    def common_locations(self, limit: int = 6) -> list[str]:
        counter = Counter(e.location for e in self.db.events if e.location)
        return [location for location, _ in counter.most_common(limit)]

    def get_event(self, event_id: int) -> Optional[Event]:
        return next((e for e in self.db.events if e.id == event_id), None)

    def upcoming_events(self, now: datetime.datetime, limit: int = 5) -> list[Event]:
        events = [
            e for e in self.db.events if e.date_time >= now and not e.is_cancelled
        ]
        events.sort(key=lambda e: e.date_time)
        return events[:limit]

    def setlist(self, event_id: int) -> list[tuple[SetListItem, Optional[Song]]]:
        items = sorted(
            (i for i in self.db.setlist_items if i.event_id == event_id),
            key=lambda i: i.order_index,
        )
        return [
            (item, self.get_song(item.song_id) if item.song_id is not None else None)
            for item in items
        ]

    async def create_event(
        self,
        title: str,
        date_time: datetime.datetime,
        location: str,
        description: str | None,
        song_ids: list[int],
        created_by: int | None = None,
    ) -> Event:
        """Creates an event with one setlist entry per song, in the given order.

        Nothing is kept in memory when the write fails."""
        if date_time.tzinfo is None:
            raise ValueError("date_time must be timezone aware")

        missing = [i for i in song_ids if self.get_song(i) is None]
        if missing:
            raise RepositoryError(f"Songs not found: {missing}")

        snapshot = (list(self.db.events), list(self.db.setlist_items))

        event = Event(
            id=max((e.id for e in self.db.events), default=0) + 1,
            title=title,
            date_time=date_time.astimezone(datetime.timezone.utc),
            location=location,
            description=description,
            created_by=created_by,
        )
        self.db.events.append(event)
        self.db.setlist_items.extend(
            SetListItem(
                event_id=event.id,
                order_index=index,
                song_id=song_id,
                item_type=SetListItemType.SONG,
            )
            for index, song_id in enumerate(song_ids)
        )

        try:
            await self.save()
        except RepositoryError:
            self.db.events, self.db.setlist_items = snapshot
            raise

        logger.info(f"Created event {event.id} with {len(song_ids)} songs")
        return event

    async def delete_event(self, event_id: int) -> Optional[Event]:
        event = self.get_event(event_id)
        if event is None:
            return None

        snapshot = (
            list(self.db.events),
            list(self.db.setlist_items),
            list(self.db.attendances),
        )
        self.db.events.remove(event)
        self.db.setlist_items = [
            i for i in self.db.setlist_items if i.event_id != event_id
        ]
        self.db.attendances = [
            a for a in self.db.attendances if a.event_id != event_id
        ]

        try:
            await self.save()
        except RepositoryError:
            self.db.events, self.db.setlist_items, self.db.attendances = snapshot
            raise

        logger.info(f"Deleted event {event_id}")
        return event

    # attendance

    async def set_attendance(
        self,
        event_id: int,
        user_id: int,
        status: AttendanceStatus,
        now: datetime.datetime,
    ) -> Attendance:
        if self.get_event(event_id) is None:
            raise RepositoryError(f"Event {event_id} not found")

        attendance = next(
            (
                a
                for a in self.db.attendances
                if a.event_id == event_id and a.user_id == user_id
            ),
            None,
        )
        if attendance is None:
            attendance = Attendance(event_id, user_id, status, now)
            self.db.attendances.append(attendance)
        else:
            attendance.status = status
            attendance.updated_at = now

        await self.save()
        return attendance

    def attendance_counts(self, event_id: int) -> dict[AttendanceStatus, int]:
        counts = {status: 0 for status in AttendanceStatus}
        for a in self.db.attendances:
            if a.event_id == event_id:
                counts[a.status] += 1
        return counts

    # chord charts

    def get_chart(self, chart_id: int) -> Optional[ChordChart]:
        return next((c for c in self.db.chord_charts if c.id == chart_id), None)

    def charts_for_song(self, song_id: int) -> list[ChordChart]:
        return [c for c in self.db.chord_charts if c.song_id == song_id]

    async def add_chord_chart(
        self,
        song_id: int,
        key: str,
        content: str,
        capo: int | None = None,
        time_signature: str | None = None,
        created_by: int | None = None,
    ) -> ChordChart:
        if self.get_song(song_id) is None:
            raise RepositoryError(f"Song {song_id} not found")

        chart = ChordChart(
            id=max((c.id for c in self.db.chord_charts), default=0) + 1,
            song_id=song_id,
            key=key,
            content=content,
            capo=capo,
            time_signature=time_signature,
            format=ChordChartFormat.CHORD_PRO,
            created_by=created_by,
        )
        self.db.chord_charts.append(chart)
        try:
            await self.save()
        except RepositoryError:
            self.db.chord_charts.remove(chart)
            raise
        return chart

    def _migrate(self, data: dict[str, Any]):
        if data.get("version") is None:
            data = {"admin_ids": [], "version": 1}

        data = deepcopy(data)
        if data["version"] == 1:
            data["roles"] = [
                {
                    "id": i,
                    "name": name,
                    "icon": icon,
                    "display_order": i,
                    "description": description,
                }
                for i, (name, icon, description) in enumerate(DEFAULT_ROLES, 1)
            ]
            data["user_roles"] = []
            data["version"] = 2

        return data
