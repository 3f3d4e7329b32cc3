from planner.handlers.command_handler import CommandHandler
from planner.handlers.handler import Handler
from planner.localization import Localization


def make_help_message(
    handlers: list[Handler],
    is_admin: bool,
    texts: Localization,
    language: str,
):
    keys = [
        "help_cancel",
        *(
            handler.help()
            for handler in handlers
            if is_admin or not handler.only_for_admin
        ),
    ]
    help_msgs = sorted(texts.get(key, language) for key in keys if key is not None)

    if len(help_msgs) == 0:
        return texts.get("help_empty", language)

    return "\n".join([texts.get("help_header", language), "", *help_msgs])


@CommandHandler("help")
class HelpHandler(Handler):
    def __init__(self, handlers: list[Handler]):
        self.handlers = handlers

    async def chat(self, context):
        is_admin = context.repository.is_admin(context.message.from_user.id)
        await context.message.reply_text(
            make_help_message(
                [*self.handlers, self],
                is_admin,
                context.texts,
                context.language,
            )
        )

    def help(self):
        return "help_help"
