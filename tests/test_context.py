import pytest
from pydantic import BaseModel

from genagent.context import VARIABLES_INSTRUCTION, PromptContext
from genagent.errors import ConfigurationError, DuplicateToolError, ToolValidationError
from genagent.hooks import HookPipeline
from genagent.models import ExecutionState, Message
from genagent.tools import ToolRegistry


class AddArgs(BaseModel):
    a: int
    b: int


def _context() -> PromptContext:
    state = ExecutionState()
    return PromptContext(state, ToolRegistry(state), HookPipeline())


# ---------------------------------------------------------------------------
# Message / variable builder
# ---------------------------------------------------------------------------

def test_def_message_appends_in_order():
    ctx = _context()
    ctx.def_message("user", "My name is Alice")
    ctx.def_message("assistant", "Nice to meet you, Alice!")

    assert ctx.state.messages == [
        Message(role="user", content="My name is Alice"),
        Message(role="assistant", content="Nice to meet you, Alice!"),
    ]

def test_def_message_rejects_unknown_role():
    ctx = _context()
    with pytest.raises(ValueError):
        ctx.def_message("narrator", "Once upon a time")

def test_variable_instruction_added_once():
    ctx = _context()
    ctx.def_var("CITY", "Paris")
    ctx.def_var("COUNTRY", "France")

    system = [m for m in ctx.state.messages if m.content == VARIABLES_INSTRUCTION]
    assert len(system) == 1
    assert ctx.variables == {"CITY": "Paris", "COUNTRY": "France"}

def test_render_interpolates_and_prepends_variables():
    ctx = _context()
    ctx.def_var("CITY", "Paris")
    ctx.def_var("COUNTRY", "France")

    text = ctx.render(["Describe $CITY in ", " words, not ", "."], 50, None)

    assert text == "CITY: Paris\n\nCOUNTRY: France\n\nDescribe $CITY in 50 words, not ."

def test_render_without_variables_is_plain_text():
    ctx = _context()
    assert ctx.render("What is 2 + 2?") == "What is 2 + 2?"
    assert ctx.state.messages == []

def test_prompt_is_render():
    ctx = _context()
    ctx.def_var("CITY", "Paris")

    assert ctx.prompt(["a ", " b"], 1) == ctx.render(["a ", " b"], 1) == "CITY: Paris\n\na 1 b"

# ---------------------------------------------------------------------------
# Hook pipeline
# ---------------------------------------------------------------------------

def test_hooks_fold_in_registration_order():
    pipeline = HookPipeline()
    seen = []

    def first(messages):
        seen.append([m.content for m in messages])
        return messages + [Message(role="system", content="first")]

    def unchanged(messages):
        seen.append([m.content for m in messages])
        return None

    def second(messages):
        seen.append([m.content for m in messages])
        return messages + [Message(role="system", content="second")]

    pipeline.register(first)
    pipeline.register(unchanged)
    pipeline.register(second)

    result = pipeline.apply([Message(role="user", content="hi")])

    assert [m.content for m in result] == ["hi", "first", "second"]
    assert seen == [["hi"], ["hi", "first"], ["hi", "first"]]

def test_hook_pipeline_does_not_mutate_input():
    pipeline = HookPipeline()

    def mutating(messages):
        messages.append(Message(role="system", content="extra"))
        return messages

    pipeline.register(mutating)
    stored = [Message(role="user", content="hi")]

    first = pipeline.apply(stored)
    second = pipeline.apply(stored)

    assert stored == [Message(role="user", content="hi")]
    assert first == second

# ---------------------------------------------------------------------------
# Tool registry
# ---------------------------------------------------------------------------

def test_duplicate_tool_name_rejected():
    ctx = _context()
    ctx.def_tool("add", "Add numbers", AddArgs, lambda args: args["a"] + args["b"])

    with pytest.raises(DuplicateToolError):
        ctx.def_tool("add", "Add again", AddArgs, lambda args: 0)
    assert issubclass(DuplicateToolError, ConfigurationError)

def test_execute_validates_before_invocation():
    ctx = _context()
    calls = []
    ctx.def_tool("add", "Add numbers", AddArgs, lambda args: calls.append(args))

    with pytest.raises(ToolValidationError) as excinfo:
        ctx.registry.execute("add", '{"a": 1}')

    assert excinfo.value.fields == ["b"]
    assert calls == []
    assert ctx.state.tool_calls == []

def test_execute_rejects_malformed_json_arguments():
    ctx = _context()
    ctx.def_tool("add", "Add numbers", AddArgs, lambda args: 0)

    with pytest.raises(ToolValidationError, match="not valid JSON"):
        ctx.registry.execute("add", "{broken")

def test_execute_records_pending_then_result():
    ctx = _context()
    observed = []

    def add(args):
        record = ctx.state.tool_calls[-1]
        observed.append(record.pending)
        return args["a"] + args["b"]

    ctx.def_tool("add", "Add numbers", AddArgs, add)
    result = ctx.registry.execute("add", {"a": "2", "b": 3})

    record = ctx.state.tool_calls[0]
    assert result == 5
    assert observed == [True]
    assert record.args == {"a": 2, "b": 3}
    assert record.result == 5
    assert record.error is None

def test_execute_records_error_and_reraises():
    ctx = _context()

    def explode(args):
        raise RuntimeError("disk full")

    ctx.def_tool("add", "Add numbers", AddArgs, explode)
    held = []
    ctx.state.subscribe(lambda state: held.extend(state.tool_calls[len(held):]))

    with pytest.raises(RuntimeError, match="disk full"):
        ctx.registry.execute("add", {"a": 1, "b": 2})

    assert held[0] is ctx.state.tool_calls[0]
    assert held[0].error == "disk full"

def test_provider_format_uses_json_schema():
    ctx = _context()
    ctx.def_tool("add", "Add numbers", AddArgs, lambda args: 0)

    (tool,) = ctx.registry.provider_tools()

    assert tool["type"] == "function"
    assert tool["function"]["name"] == "add"
    assert tool["function"]["description"] == "Add numbers"
    assert set(tool["function"]["parameters"]["properties"]) == {"a", "b"}
    assert ctx.state.tools == ["add"]

def test_def_agent_requires_run_context():
    ctx = _context()
    with pytest.raises(ConfigurationError):
        ctx.def_agent("helper", "Helps", AddArgs, lambda args, agent_ctx: "hi")
