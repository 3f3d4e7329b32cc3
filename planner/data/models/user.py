from dataclasses import dataclass
from typing import Optional


@dataclass
class User:
    id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None
    language_code: str = "ro"

    @property
    def display_name(self):
        if self.first_name or self.last_name:
            return " ".join(p for p in (self.first_name, self.last_name) if p)
        if self.username:
            return "@" + self.username
        return str(self.id)
