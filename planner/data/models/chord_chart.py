from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ChordChartFormat(Enum):
    CHORD_PRO = 0
    PLAIN_TEXT = 1


@dataclass
class ChordChart:
    id: int
    song_id: int
    key: str
    content: str
    capo: Optional[int] = None
    time_signature: Optional[str] = None
    format: ChordChartFormat = ChordChartFormat.CHORD_PRO
    created_by: Optional[int] = None
