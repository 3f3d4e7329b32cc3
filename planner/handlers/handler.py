from planner.bot.context import CallbackBotContext, ChatBotContext


class Handler:
    # class attribute works as a default, subclasses override it without super()
    only_for_admin = False

    async def chat(self, context: ChatBotContext) -> bool:
        """Chat message handler"""
        return False

    async def callback(self, context: CallbackBotContext) -> bool:
        """Callback handler"""
        return False

    def help(self) -> str | None:
        """Localization key of the command description"""
        return None
