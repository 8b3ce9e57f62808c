"""Assembles retrieved turns into a few-shot context block."""
from typing import Sequence

from models.turn import ConversationTurn


class ContextAssembler:
    """
    Formats past turns as labeled user/bot pairs.

    Pure and deterministic: the turns are rendered in the order given
    (nearest first when they come from a similarity query).
    """

    USER_LABEL = "User"
    BOT_LABEL = "You"

    @classmethod
    def build(cls, turns: Sequence[ConversationTurn]) -> str:
        """
        Build the context block.

        Args:
            turns: Ordered past turns

        Returns:
            One "User: ...\\nYou: ..." block per turn, separated by a blank
            line, or "" when there are no turns
        """
        if not turns:
            return ""

        return "\n\n".join(
            f"{cls.USER_LABEL}: {turn.user_message}\n{cls.BOT_LABEL}: {turn.bot_response}"
            for turn in turns
        )
