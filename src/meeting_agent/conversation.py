"""Model-facing conversation log with validity repair and truncation."""

import logging
from collections import Counter
from typing import Any

from .types import AssistantTurn, SystemTurn, ToolResultTurn, Turn, UserTurn

LOG = logging.getLogger("meeting_agent.conversation")


class ConversationStore:
    """Ordered log of turns, starting with exactly one SystemTurn.

    A ToolResultTurn is valid when the turns between the most recent
    UserTurn before it and itself contain exactly one AssistantTurn that
    requested its id. Anything else is orphaned and must not reach the
    model endpoint.
    """

    def __init__(self, system_prompt: str) -> None:
        self._turns: list[Turn] = [SystemTurn(content=system_prompt)]

    def __len__(self) -> int:
        return len(self._turns)

    @property
    def turns(self) -> list[Turn]:
        return list(self._turns)

    @property
    def system(self) -> SystemTurn:
        return self._turns[0]

    def append(self, turn: Turn) -> None:
        if isinstance(turn, SystemTurn):
            raise ValueError("The system turn is fixed at creation")
        self._turns.append(turn)

    def _orphan_indices(self) -> set[int]:
        orphans: set[int] = set()
        requested: Counter[str] = Counter()
        for index, turn in enumerate(self._turns):
            if isinstance(turn, UserTurn):
                requested.clear()
            elif isinstance(turn, AssistantTurn):
                requested.update(turn.request_ids)
            elif isinstance(turn, ToolResultTurn):
                if requested[turn.request_id] != 1:
                    orphans.add(index)
        return orphans

    def validate(self) -> bool:
        return not self._orphan_indices()

    def repair(self) -> int:
        """Drop orphaned tool results, keeping everything else in order.

        Returns:
            Number of turns removed (0 when the log was already valid).
        """
        orphans = self._orphan_indices()
        if orphans:
            self._turns = [
                turn for index, turn in enumerate(self._turns) if index not in orphans
            ]
        return len(orphans)

    def truncate(self, keep_last: int) -> int:
        """Keep the system turn plus roughly the last *keep_last* turns.

        The cut is moved towards the start while it would separate a
        tool-requesting AssistantTurn from its results, so more than
        *keep_last* turns can survive.

        Returns:
            Number of turns removed.
        """
        body = self._turns[1:]
        if len(body) <= keep_last:
            return 0

        cut = len(body) - keep_last
        while cut > 0 and not _is_boundary(body, cut):
            cut -= 1

        before = len(self._turns)
        self._turns = [self._turns[0], *body[cut:]]
        # Results whose request sat behind a tool-free reply can lose it.
        self.repair()
        removed = before - len(self._turns)
        if removed:
            LOG.info("Truncated conversation history to %d turns", len(self._turns))
        return removed

    def prepare(self) -> list[dict[str, Any]]:
        """Return the log as chat messages, repairing it first if needed."""
        removed = self.repair()
        if removed:
            LOG.warning(
                "Invalid turn sequence detected, removed %d orphaned tool result(s)",
                removed,
            )
        return [turn.to_message() for turn in self._turns]

    def last_user_turn(self) -> UserTurn | None:
        for turn in reversed(self._turns):
            if isinstance(turn, UserTurn):
                return turn
        return None

    def reset(self) -> None:
        """Reduce the log to the system turn and the most recent user turn."""
        last_user = self.last_user_turn()
        self._turns = [self._turns[0]]
        if last_user is not None:
            self._turns.append(last_user)
        LOG.warning("Conversation reset to %d turns", len(self._turns))


def _is_boundary(body: list[Turn], index: int) -> bool:
    turn = body[index]
    if isinstance(turn, ToolResultTurn):
        return False
    previous = body[index - 1]
    return not (isinstance(previous, AssistantTurn) and previous.tool_requests)
