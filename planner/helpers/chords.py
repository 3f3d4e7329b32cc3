import re
from dataclasses import dataclass
from typing import Optional

from planner.helpers.song_input import KEY_PATTERN

HEADER_PATTERN = re.compile(r"^(KEY|CAPO|TIME)\s*:\s*(.*)$", re.IGNORECASE)
MAX_HEADER_LINES = 3


@dataclass
class ChartInput:
    content: str
    key: Optional[str] = None
    capo: Optional[int] = None
    time_signature: Optional[str] = None


def parse_chart(text: str) -> ChartInput:
    """Splits leading KEY:/CAPO:/TIME: lines from the chart body"""
    lines = text.strip().splitlines()
    chart = ChartInput(content="")

    consumed = 0
    for line in lines[:MAX_HEADER_LINES]:
        match = HEADER_PATTERN.match(line.strip())
        if match is None:
            break
        consumed += 1

        name, value = match.group(1).upper(), match.group(2).strip()
        if name == "KEY" and KEY_PATTERN.match(value):
            chart.key = value
        elif name == "CAPO" and value.isdigit():
            chart.capo = int(value)
        elif name == "TIME" and value:
            chart.time_signature = value

    chart.content = "\n".join(lines[consumed:]).strip()
    return chart
