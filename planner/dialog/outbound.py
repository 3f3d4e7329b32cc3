from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from planner.dialog.events import Inbound


@dataclass(frozen=True)
class Button:
    label: str
    action: Any


type KeyboardLine = list[Button]
type Keyboard = list[KeyboardLine]


@dataclass
class OutboundDirective:
    """What to show after an event was processed.

    text replaces the originating message (callbacks) or is sent as a new
    message; notice is a short acknowledgement shown without touching it."""

    text: str | None = None
    keyboard: Keyboard | None = None
    notice: str | None = None
    edit: bool = True


class Renderer(ABC):
    @abstractmethod
    async def render(self, event: Inbound, directive: OutboundDirective): ...
