from planner.handlers.command_handler import CommandHandler
from planner.handlers.handler import Handler


# active dialogs take /cancel first, this one answers when there is none
@CommandHandler(["cancel", "stop"])
class CancelHandler(Handler):
    async def chat(self, context):
        await context.message.reply_text(context.t("nothing_to_cancel"))
