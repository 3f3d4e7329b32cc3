from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class Role:
    id: int
    name: str
    icon: str = ""
    display_order: int = 0
    description: Optional[str] = None

    @property
    def label(self):
        return f"{self.icon} {self.name}".strip()


@dataclass
class UserRole:
    user_id: int
    role_id: int
    assigned_at: datetime
