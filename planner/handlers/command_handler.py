import inspect
import logging
import re
from functools import wraps
from typing import Any, Callable, Optional

from planner.bot.context import ChatBotContext
from planner.helpers.command_validation import (
    ValidationArgumentsError,
    validate_command_msg,
)

logger = logging.getLogger(__name__)


type Mapping[T] = Callable[[str | None], T]


# decorator for simple command handlers
def CommandHandler(
    command: str | list[str],
    arguments_template: Optional[str | re.Pattern] = None,
    arguments_mapping: dict[str, Mapping[Any]] | None = None,
    only_admin: Optional[bool] = None,
):
    mapping = arguments_mapping or {}

    def decorator(handlerClass):
        chat = handlerClass.chat
        sig = inspect.signature(chat)
        # handler wants parsed arguments
        send_arguments = len(sig.parameters.keys()) > 2

        @wraps(handlerClass.chat)
        async def filteredChat(self, context: ChatBotContext):
            validation_result = validate_command_msg(
                context.update,
                command,
                arguments_template,
            )
            if not validation_result:
                return False

            logger.debug(f"Command {command} from {context.message.chat_id}")

            if send_arguments:

                def get_value(name: str, value: str | None, default: Any):
                    mapper = mapping.get(name)
                    if mapper is not None:
                        return mapper(value)
                    if value is None or value == "":
                        return default
                    return value

                try:
                    kwargs = {
                        k: get_value(k, v, sig.parameters[k].default)
                        for k, v in (validation_result.args or {}).items()
                        if k in sig.parameters.keys()
                    }
                except (TypeError, ValueError) as e:
                    logger.warning(f"Invalid arguments for /{command}: {e}")
                    raise ValidationArgumentsError() from e

                result = await chat(self, context, **kwargs)
            else:
                result = await chat(self, context)
            return True if result is None else result

        handlerClass.only_for_admin = only_admin is True
        handlerClass.chat = filteredChat
        return handlerClass

    return decorator
