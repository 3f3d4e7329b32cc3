import pytest

from planner.data.models.song import Song
from planner.helpers.chords import parse_chart
from planner.helpers.formats import format_lined_list, format_song_label
from planner.helpers.song_input import SongLine, parse_song_line, parse_song_lines, parse_tempo
from planner.helpers.validation import Error, check, max_length, not_empty, try_get, validate
from planner.localization import STRINGS, Localization


@pytest.mark.parametrize(
    "line, expected",
    [
        ("Oceans", SongLine("Oceans")),
        ("Oceans | D | 64", SongLine("Oceans", "D", 64)),
        ("  Oceans |  | 64 ", SongLine("Oceans", None, 64)),
        ("Oceans | H | 64", SongLine("Oceans", None, 64)),
        ("Oceans | Bbm | fast", SongLine("Oceans", "Bbm", None)),
        ("Oceans | D | 900", SongLine("Oceans", "D", None)),
        (" | D", None),
    ],
)
def test_parse_song_line(line, expected):
    assert parse_song_line(line) == expected


def test_parse_song_lines_skips_blank_lines():
    songs = parse_song_lines("Oceans | D\n\n  \nCornerstone")

    assert [s.title for s in songs] == ["Oceans", "Cornerstone"]


def test_tempo_range():
    assert parse_tempo(" 20 ") == 20
    with pytest.raises(ValueError):
        parse_tempo("301")


def test_parse_chart_headers():
    chart = parse_chart("Key: F#m\nCAPO: 3\ntime: 6/8\n\n[F#m]Line one\n[D]Line two")

    assert chart.key == "F#m"
    assert chart.capo == 3
    assert chart.time_signature == "6/8"
    assert chart.content == "[F#m]Line one\n[D]Line two"


def test_parse_chart_headers_only_at_top():
    chart = parse_chart("[C]Intro\nKEY: G")

    assert chart.key is None
    assert chart.content == "[C]Intro\nKEY: G"


def test_parse_chart_ignores_bad_header_values():
    chart = parse_chart("KEY: X\nCAPO: two\n[C]la")

    assert chart.key is None
    assert chart.capo is None
    assert chart.content == "[C]la"


def test_validate_stops_at_first_error():
    calls = []

    def tracked(value):
        calls.append(value)
        return value

    result = validate("", [not_empty(), tracked])

    assert isinstance(result, Error)
    assert result.key == "error_empty"
    assert calls == []


def test_validate_converts_and_passes_payload():
    result = validate(
        "12",
        [
            try_get(lambda v: int(v)),
            check(lambda value, payload: value < payload, "error_too_big"),
        ],
        payload=20,
    )

    assert result == 12
    assert validate("x" * 5, [max_length(4)]).key == "error_too_long"
    assert validate("x", [try_get(lambda v: int(v))]).key == "error_invalid_value"


def test_format_lined_list_aligns_numbers():
    items = [(i, f"Song {i}") for i in (1, 10)]

    assert format_lined_list(items) == " 1. Song 1\n10. Song 10"


def test_format_song_label():
    song = Song(id=1, title="Oceans", key="D")

    assert format_song_label(song) == "Oceans (D)"
    assert format_song_label(song, selected=True) == "✅ Oceans (D)"


def test_localization_fallbacks():
    texts = Localization()

    assert texts.language_of("en-US") == "en"
    assert texts.language_of("de") == "ro"
    assert texts.language_of(None) == "ro"
    assert texts.get("no_such_key", "en") == "no_such_key"
    assert texts.get("cancelled", "de") == texts.get("cancelled", "ro")


def test_localization_has_same_keys_in_every_language():
    assert STRINGS["en"].keys() == STRINGS["ro"].keys()


def test_localization_accepts_key_placeholder():
    texts = Localization({"en": {"greeting": "{key} / {language}"}}, "en")

    assert texts.get("greeting", "en", key="D", language="ro") == "D / ro"
