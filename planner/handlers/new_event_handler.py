from planner.dialog.session import DialogKind
from planner.handlers.command_handler import CommandHandler
from planner.handlers.handler import Handler


@CommandHandler("newevent", only_admin=True)
class NewEventHandler(Handler):
    async def chat(self, context):
        await context.coordinator.start(context.event, DialogKind.EVENT_WIZARD)

    def help(self):
        return "help_newevent"
