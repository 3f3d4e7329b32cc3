from planner.dialog.dialogs.role_select import format_roles
from planner.handlers.command_handler import CommandHandler
from planner.handlers.handler import Handler


@CommandHandler("myroles")
class MyRolesHandler(Handler):
    async def chat(self, context):
        from_user = context.message.from_user
        user = context.repository.get_user(from_user.id)
        is_admin = context.repository.is_admin(from_user.id)

        text = context.t(
            "profile",
            name=user.display_name if user else from_user.first_name,
            username=f"@{user.username}" if user and user.username else context.t("not_set"),
            admin=context.t("yes" if is_admin else "no"),
        )
        roles = context.repository.user_roles(from_user.id)
        text += "\n\n" + context.t("profile_roles_header")
        text += "\n" + format_roles(roles, context.texts, context.language)
        text += "\n\n" + context.t("profile_update_hint")

        await context.message.reply_text(text)

    def help(self):
        return "help_myroles"
