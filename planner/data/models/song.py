from dataclasses import dataclass
from enum import StrEnum
from typing import Optional


class SongField(StrEnum):
    TITLE = "title"
    ARTIST = "artist"
    KEY = "key"
    TEMPO = "tempo"
    YOUTUBE = "youtube"
    CHORDS = "chords"


@dataclass
class Song:
    id: int
    title: str
    artist: Optional[str] = None
    key: Optional[str] = None
    tempo: Optional[int] = None
    youtube_url: Optional[str] = None
    chord_sheet_url: Optional[str] = None
    created_by: Optional[int] = None
