from planner.handlers.command_handler import CommandHandler
from planner.handlers.handler import Handler


@CommandHandler("start")
class StartHandler(Handler):
    async def chat(self, context):
        await context.message.reply_text(
            context.t("welcome", name=context.message.from_user.first_name)
        )

    def help(self):
        return "help_start"
