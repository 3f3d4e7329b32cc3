from dataclasses import dataclass


@dataclass
class InboundEvent:
    owner_id: int
    chat_id: int
    message_id: int | None
    language: str


@dataclass
class CallbackEvent(InboundEvent):
    token: str | None
    callback_query_id: str | None = None
    # set by the renderer once the callback query has been answered
    answered: bool = False


@dataclass
class TextEvent(InboundEvent):
    text: str


type Inbound = CallbackEvent | TextEvent
