import copy
import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from genagent import display


# ---------------------------------------------------------------------------
# Scripted OpenAI client
# ---------------------------------------------------------------------------


def _chunk(content=None, tool_calls=None):
    delta = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(delta=delta, finish_reason=None)])


def _fragment(index, call_id, name, arguments):
    function = SimpleNamespace(name=name, arguments=arguments)
    return SimpleNamespace(index=index, id=call_id, function=function)


class MockLLM:
    """
    Stands in for an OpenAI client. Each queued response is consumed by one
    chat.completions.create(stream=True) call and streamed back as chunks;
    tool-call arguments are split across fragments like the real API does.
    """

    def __init__(self) -> None:
        self.responses: list[dict] = []
        self.calls: list[dict] = []
        self.client = MagicMock()
        self.client.chat.completions.create.side_effect = self._create

    def add_response(self, text: str = "", tool_calls: list[tuple[str, dict]] | None = None) -> None:
        self.responses.append({"text": text, "tool_calls": tool_calls or []})

    def add_responses(self, responses: list) -> None:
        for response in responses:
            if isinstance(response, str):
                self.add_response(response)
            else:
                self.add_response(**response)

    def _create(self, **kwargs):
        self.calls.append(copy.deepcopy(kwargs))
        index = len(self.calls) - 1
        if index >= len(self.responses):
            raise AssertionError(
                f"No mock response configured for call #{index + 1}. "
                f"Only {len(self.responses)} response(s) were configured."
            )
        response = self.responses[index]

        chunks = []
        text = response["text"]
        if text:
            middle = len(text) // 2
            for piece in (text[:middle], text[middle:]):
                if piece:
                    chunks.append(_chunk(content=piece))
        for i, (name, args) in enumerate(response["tool_calls"]):
            raw = json.dumps(args)
            middle = len(raw) // 2
            chunks.append(_chunk(tool_calls=[_fragment(i, f"call_{index}_{i}", name, raw[:middle])]))
            chunks.append(_chunk(tool_calls=[_fragment(i, None, None, raw[middle:])]))
        return iter(chunks)

    def messages(self, call: int) -> list[dict]:
        return self.calls[call]["messages"]

    def tool_names(self, call: int) -> list[str]:
        return [tool["function"]["name"] for tool in self.calls[call].get("tools", [])]


@pytest.fixture
def mock_llm() -> MockLLM:
    return MockLLM()


@pytest.fixture(autouse=True)
def quiet_display():
    display.set_quiet(True)
    yield
    display.set_quiet(False)
