from planner.data.models.chord_chart import ChordChart
from planner.data.models.song import Song
from planner.localization import Localization


def format_lined_list[T](items: list[tuple[T, str]], delimiter: str = ". "):
    if not items:
        return ""
    max_length = max(len(str(item[0])) for item in items)
    return "\n".join(
        str(item[0]).rjust(max_length) + delimiter + item[1] for item in items
    )


def format_song_label(song: Song, selected: bool = False):
    label = song.title
    if song.key:
        label += f" ({song.key})"
    return ("✅ " if selected else "") + label


def format_song_details(song: Song, texts: Localization, language: str):
    lines = [f"🎵 {song.title}"]
    for key, value in [
        ("field_artist", song.artist),
        ("field_key", song.key),
        ("field_tempo", f"{song.tempo} BPM" if song.tempo else None),
        ("field_youtube", song.youtube_url),
        ("field_chords", song.chord_sheet_url),
    ]:
        if value:
            lines.append(f"{texts.get(key, language)}: {value}")
    return "\n".join(lines)


def format_chart(chart: ChordChart, song: Song | None, texts: Localization, language: str):
    header = [f"🎸 {song.title if song else '?'}"]
    header.append(f"{texts.get('field_key', language)}: {chart.key}")
    if chart.capo:
        header.append(f"{texts.get('field_capo', language)}: {chart.capo}")
    if chart.time_signature:
        header.append(f"{texts.get('field_time', language)}: {chart.time_signature}")
    return "\n".join(header) + "\n\n" + chart.content
