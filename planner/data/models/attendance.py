from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class AttendanceStatus(Enum):
    YES = 1
    NO = 2
    MAYBE = 3


@dataclass
class Attendance:
    event_id: int
    user_id: int
    status: AttendanceStatus
    updated_at: datetime
