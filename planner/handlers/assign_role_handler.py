import logging
from datetime import datetime, timezone

from planner.data.repository import RepositoryError
from planner.handlers.command_handler import CommandHandler
from planner.handlers.handler import Handler

logger = logging.getLogger(__name__)


@CommandHandler(
    "assignrole",
    arguments_template=r"@?(?P<username>\w+)\s+(?P<role_name>.+)",
    only_admin=True,
)
class AssignRoleHandler(Handler):
    async def chat(self, context, username: str, role_name: str):
        repository = context.repository

        user = repository.find_user_by_username(username)
        if user is None:
            await context.message.reply_text(
                context.t("user_not_found", username=username)
            )
            return

        role = repository.find_role_by_name(role_name)
        if role is None:
            await context.message.reply_text(
                context.t(
                    "role_not_found",
                    role=role_name,
                    roles=", ".join(r.name for r in repository.roles_sorted()),
                )
            )
            return

        try:
            assigned = await repository.assign_role(
                user.id, role.id, datetime.now(timezone.utc)
            )
        except RepositoryError as e:
            logger.error(f"Failed to assign role {role.id} to {user.id}: {e}")
            await context.message.reply_text(context.t("error_save"))
            return

        if not assigned:
            await context.message.reply_text(
                context.t("role_already_assigned", username=username, role=role.name)
            )
            return

        logger.info(
            f"Role {role.name} assigned to {user.id} by {context.message.from_user.id}"
        )
        await context.message.reply_text(
            context.t("role_assigned", username=username, role=role.label)
        )

    def help(self):
        return "help_assignrole"
