import re
from dataclasses import dataclass
from typing import Optional

KEY_PATTERN = re.compile(r"^[A-G](#|b)?m?$")
MIN_TEMPO = 20
MAX_TEMPO = 300


@dataclass
class SongLine:
    title: str
    key: Optional[str] = None
    tempo: Optional[int] = None


def parse_key(value: str) -> str:
    value = value.strip()
    if not KEY_PATTERN.match(value):
        raise ValueError(f"Invalid key {value}")
    return value


def parse_tempo(value: str) -> int:
    tempo = int(value.strip())
    if not MIN_TEMPO <= tempo <= MAX_TEMPO:
        raise ValueError(f"Tempo out of range {tempo}")
    return tempo


def parse_song_line(line: str) -> SongLine | None:
    """Parses `Title | Key | Tempo`, key and tempo are optional and dropped
    when malformed"""
    parts = [part.strip() for part in line.split("|")]
    if not parts[0]:
        return None

    song = SongLine(title=parts[0])
    if len(parts) > 1 and parts[1]:
        try:
            song.key = parse_key(parts[1])
        except ValueError:
            pass
    if len(parts) > 2 and parts[2]:
        try:
            song.tempo = parse_tempo(parts[2])
        except ValueError:
            pass
    return song


def parse_song_lines(text: str) -> list[SongLine]:
    return [
        song
        for song in (parse_song_line(line) for line in text.splitlines())
        if song is not None
    ]
