import logging
import re

from telegram import MessageEntity, Update

logger = logging.getLogger(__name__)


def validate_arguments(
    argument_string: str,
    argument_regex: str | re.Pattern,
) -> dict[str, str] | None:
    if isinstance(argument_regex, str):
        argument_regex = re.compile(argument_regex)
    match = argument_regex.fullmatch(argument_string.strip())

    logger.debug(
        "validate_arguments result (%s on template %s): %s",
        match,
        argument_string,
        argument_regex,
    )

    if match is None:
        return None

    return match.groupdict()


class ValidationResult:
    def __init__(self, is_valid: bool, args: dict[str, str] | None = None) -> None:
        self.is_valid = is_valid
        self.args = args

    def __bool__(self):
        return self.is_valid


class ValidationArgumentsError(Exception):
    pass


def validate_command_msg(
    update: Update,
    command: str | list[str],
    argument_regex: re.Pattern | str | None = None,
) -> ValidationResult:
    if isinstance(command, list):
        for c in command:
            result = validate_command_msg(update, c, argument_regex)
            if result:
                return result
        return ValidationResult(False)

    if not isinstance(update, Update) or not update.message:
        return ValidationResult(False)

    message = update.message
    if not (
        message.entities
        and message.entities[0].type == MessageEntity.BOT_COMMAND
        and message.entities[0].offset == 0
        and message.text
    ):
        return ValidationResult(False)

    # accepts /command and /command@bot_username
    command_length = message.entities[0].length
    name, _, username = message.text[1:command_length].partition("@")
    bot_username = message.get_bot().username or ""

    if name.lower() != command or (
        username and username.lower() != bot_username.lower()
    ):
        return ValidationResult(False)

    if argument_regex is not None:
        args = validate_arguments(message.text[command_length:], argument_regex)
        if args is None:
            raise ValidationArgumentsError()
        return ValidationResult(True, args)

    return ValidationResult(True)
