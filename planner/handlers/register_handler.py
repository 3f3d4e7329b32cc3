from planner.dialog.session import DialogKind, RoleSelectPayload
from planner.handlers.command_handler import CommandHandler
from planner.handlers.handler import Handler


@CommandHandler("register")
class RegisterHandler(Handler):
    async def chat(self, context):
        user_id = context.message.from_user.id
        await context.coordinator.start(
            context.event,
            DialogKind.ROLE_SELECT,
            RoleSelectPayload(context.repository.user_role_ids(user_id)),
        )

    def help(self):
        return "help_register"
