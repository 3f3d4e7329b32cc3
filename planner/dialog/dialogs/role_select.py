import logging
from datetime import datetime, timezone
from enum import StrEnum

from planner.data.models.role import Role
from planner.data.repository import RepositoryError
from planner.dialog.actions import RolesDone, ToggleRole
from planner.dialog.dialog import Dialog
from planner.dialog.graph import Modality, StepGraph, StepSpec
from planner.dialog.outbound import Button, Keyboard, OutboundDirective
from planner.dialog.session import DialogKind, RoleSelectPayload, Session
from planner.dialog.step import StepContext, stay, terminate
from planner.localization import Localization

logger = logging.getLogger(__name__)


class RoleSelectStep(StrEnum):
    SELECT_ROLES = "select_roles"


def format_roles(roles: list[Role], texts: Localization, language: str) -> str:
    if not roles:
        return texts.get("roles_none", language)
    return "\n".join(role.label for role in roles)


class RoleSelectDialog(Dialog):
    """Registration: the participant picks the roles they serve in.

    Toggles only change the payload, the roles are stored on Done."""

    kind = DialogKind.ROLE_SELECT
    entry_command = "register"

    def build_graph(self):
        return StepGraph(
            kind=self.kind,
            start=RoleSelectStep.SELECT_ROLES,
            terminal=RoleSelectStep.SELECT_ROLES,
            steps={
                RoleSelectStep.SELECT_ROLES: StepSpec(
                    Modality.CALLBACK,
                    self._on_role,
                    accepts=(ToggleRole, RolesDone),
                    allow_back=False,
                ),
            },
        )

    def new_payload(self):
        return RoleSelectPayload()

    async def _on_role(self, ctx: StepContext):
        payload: RoleSelectPayload = ctx.payload

        if isinstance(ctx.action, RolesDone):
            return await self._commit(ctx)

        role = self.repository.get_role(ctx.action.role_id)
        if role is None:
            return stay(
                OutboundDirective(notice=self.t("miss_stale_button", ctx.language))
            )

        if role.id in payload.role_ids:
            payload.role_ids.remove(role.id)
            notice = self.t("role_removed", ctx.language, role=role.label)
        else:
            payload.role_ids.append(role.id)
            notice = self.t("role_selected", ctx.language, role=role.label)

        directive = self.render(ctx.session, ctx.language)
        directive.notice = notice
        return stay(directive)

    async def _commit(self, ctx: StepContext):
        payload: RoleSelectPayload = ctx.payload
        # roles removed since the dialog started are dropped
        role_ids = [i for i in payload.role_ids if self.repository.get_role(i)]

        try:
            await self.repository.set_user_roles(
                ctx.session.owner_id, role_ids, datetime.now(timezone.utc)
            )
        except RepositoryError as e:
            logger.error(f"Failed to save roles of {ctx.session.owner_id}: {e}")
            return self.reprompt(ctx, "error_save")

        logger.info(f"User {ctx.session.owner_id} registered with roles {role_ids}")
        roles = self.repository.user_roles(ctx.session.owner_id)
        return terminate(
            OutboundDirective(
                text=self.t("registration_complete", ctx.language)
                + "\n\n"
                + format_roles(roles, self.texts, ctx.language),
            ),
            committed=True,
        )

    def render(self, session: Session, language: str) -> OutboundDirective:
        payload: RoleSelectPayload = session.payload  # type: ignore

        keyboard: Keyboard = [
            [
                Button(
                    ("✅ " if role.id in payload.role_ids else "") + role.label,
                    ToggleRole(role.id),
                )
            ]
            for role in self.repository.roles_sorted()
        ]
        keyboard.append([Button(self.t("button_roles_done", language), RolesDone())])
        keyboard.append(self.nav_line(session, language))

        return OutboundDirective(
            text=self.t("register_prompt", language),
            keyboard=keyboard,
        )
