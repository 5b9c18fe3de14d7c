# hooks.py
# Message-history hook pipeline.
#
# A hook receives the current visible history and returns either a full
# replacement list or None for "no change". Hooks run in registration order
# and each one sees the previous hook's output; there is no short-circuit.

from typing import Callable, Optional

from genagent.models import Message

Hook = Callable[[list[Message]], Optional[list[Message]]]


class HookPipeline:
    def __init__(self) -> None:
        self._hooks: list[Hook] = []

    def register(self, hook: Hook) -> None:
        self._hooks.append(hook)

    def __len__(self) -> int:
        return len(self._hooks)

    def apply(self, messages: list[Message]) -> list[Message]:
        """
        Fold the hooks over a copy of `messages`.

        The input list is never mutated, so applying the pipeline twice to the
        same stored history with unchanged hook state yields equal output.
        """
        current = list(messages)
        for hook in self._hooks:
            result = hook(list(current))
            if result is not None:
                current = list(result)
        return current
