"""Append-only conversation transcript owned by one session."""

from __future__ import annotations

from typing import Iterable, Iterator, Optional, Self, Union

from call_agent.types.message import MESSAGE_TYPES, Message

__all__ = ["Conversation"]


class Conversation:
    """
    Ordered message history.

    Messages are only ever appended; nothing is removed or reordered for the
    lifetime of the conversation. Read through ``snapshot()`` to get a copy
    that later appends cannot change.
    """

    def __init__(self, messages: Iterable[Message] = ()) -> None:
        self._messages: list[Message] = []
        self.add(messages)

    def add(self, *messages: Union[Message, Iterable[Message]]) -> Self:
        """Append messages in the order given; iterables are flattened one level."""
        batch: list[Message] = []
        for item in messages:
            if isinstance(item, MESSAGE_TYPES):
                batch.append(item)  # type: ignore[arg-type]
                continue
            for message in item:  # type: ignore[union-attr]
                if not isinstance(message, MESSAGE_TYPES):
                    raise TypeError(f"Not a message: {message!r}")
                batch.append(message)
        # validate everything before touching the history
        self._messages.extend(batch)
        return self

    def snapshot(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def last(self) -> Optional[Message]:
        return self._messages[-1] if self._messages else None

    def render(self) -> str:
        """Human-readable transcript, one block per message."""
        return "\n".join(str(m) for m in self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.snapshot())

    def __getitem__(self, index: int) -> Message:
        return self._messages[index]

    def __repr__(self) -> str:
        return f"Conversation(messages={len(self._messages)})"
