# agent.py
# Retry/generation engine and the run_prompt entry point.
#
# The Agent is the kernel. The model is a passive responder; this class owns
# all control flow: hook application, tool dispatch, schema validation and
# retry. Nothing reorders across steps within a run.
#
# Control flow per attempt:
#   hooks(stored messages) + turn tail + tool trace → model step
#   → tool calls? run them, append trace, next step (hooks re-applied)
#   → final text → schema? validate → retry with feedback or return
#
# All terminal output is delegated to display.py; no formatting here.

import json
import threading
from collections import deque
from functools import partial
from typing import Any, Callable, Optional

from openai import OpenAI
from pydantic import BaseModel, ValidationError

from genagent import config, display
from genagent.context import PromptContext
from genagent.errors import SchemaValidationError
from genagent.hooks import HookPipeline
from genagent.models import ExecutionState, ValidationAttempt
from genagent.plugins import Plugin, load_plugins
from genagent.providers import ModelHandle, load_model
from genagent.schema import (
    ResponseParseError,
    adapter_for,
    create_schema_instructions,
    extract_json,
    format_parse_error,
    format_validation_error,
)
from genagent.tools import ToolRegistry

PromptFn = Callable[[PromptContext], str]


# ---------------------------------------------------------------------------
# Interactive control
# ---------------------------------------------------------------------------


class RunControl:
    """
    Pause/resume and message injection for an interactive run.

    Checked between model steps only: an in-flight model or tool call always
    completes. Safe to drive from another thread (e.g. a UI).
    """

    def __init__(self) -> None:
        self._running = threading.Event()
        self._running.set()
        self._lock = threading.Lock()
        self._injected: deque[str] = deque()

    @property
    def paused(self) -> bool:
        return not self._running.is_set()

    def pause(self) -> None:
        self._running.clear()

    def resume(self) -> None:
        self._running.set()

    def inject(self, text: str) -> None:
        with self._lock:
            self._injected.append(text)

    def wait_until_resumed(self, timeout: Optional[float] = None) -> bool:
        return self._running.wait(timeout)

    def drain(self) -> list[str]:
        with self._lock:
            texts = list(self._injected)
            self._injected.clear()
        return texts


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _serialize_result(result: Any) -> str:
    """Render a tool result as the text the model receives."""
    if isinstance(result, str):
        return result
    if isinstance(result, BaseModel):
        return result.model_dump_json()
    return json.dumps(result, default=str)


def _assistant_tool_message(text: str, calls: list[dict]) -> dict:
    return {
        "role": "assistant",
        "content": text or None,
        "tool_calls": [
            {
                "id": call["id"],
                "type": "function",
                "function": {"name": call["name"], "arguments": call["arguments"] or "{}"},
            }
            for call in calls
        ],
    }


# ---------------------------------------------------------------------------
# Agent
# ---------------------------------------------------------------------------


class Agent:
    """
    Drives the model for one run.

    The hook pipeline is applied to the same stored messages before every
    model step and every retry, so history-replacing hooks always present the
    latest task state and identical state yields an identical base.
    """

    def __init__(
        self,
        model: ModelHandle,
        state: ExecutionState,
        registry: ToolRegistry,
        hooks: HookPipeline,
        system_prompts: Optional[list[str]] = None,
        response_schema: Any = None,
        control: Optional[RunControl] = None,
        max_retries: int = config.MAX_VALIDATION_RETRIES,
        max_steps: int = config.MAX_TOOL_STEPS,
    ) -> None:
        self.model = model
        self.state = state
        self.registry = registry
        self.hooks = hooks
        self.system_prompt = "\n\n".join(system_prompts or [])
        self.response_schema = response_schema
        self._adapter = adapter_for(response_schema) if response_schema is not None else None
        self.control = control
        self.max_retries = max_retries
        self.max_steps = max_steps

    # ------------------------------------------------------------------
    # Message assembly
    # ------------------------------------------------------------------

    def conversation(self, tail: list[dict]) -> list[dict]:
        """System prompt + hook output over the stored messages + `tail`."""
        messages: list[dict] = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.extend(m.model_dump() for m in self.hooks.apply(self.state.messages))
        messages.extend(tail)
        return messages

    # ------------------------------------------------------------------
    # Low-level model call
    # ------------------------------------------------------------------

    def _stream_step(self, messages: list[dict]) -> tuple[str, list[dict]]:
        """
        One streamed model call. Text chunks go straight into the shared
        streaming buffer; tool-call fragments are reassembled by index.
        """
        kwargs: dict[str, Any] = {
            "model": self.model.model_id,
            "messages": messages,
            "stream": True,
        }
        if len(self.registry):
            kwargs["tools"] = self.registry.provider_tools()
        if config.DEFAULT_TEMPERATURE is not None:
            kwargs["temperature"] = config.DEFAULT_TEMPERATURE

        stream = self.model.client.chat.completions.create(**kwargs)

        text = ""
        calls: dict[int, dict] = {}
        for chunk in stream:
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta
            if delta.content:
                text += delta.content
                self.state.streaming_text += delta.content
                self.state.notify()
            for fragment in getattr(delta, "tool_calls", None) or []:
                entry = calls.setdefault(fragment.index, {"id": "", "name": "", "arguments": ""})
                if fragment.id:
                    entry["id"] = fragment.id
                if fragment.function is not None:
                    if fragment.function.name:
                        entry["name"] += fragment.function.name
                    if fragment.function.arguments:
                        entry["arguments"] += fragment.function.arguments

        ordered = [calls[index] for index in sorted(calls)]
        for position, call in enumerate(ordered):
            if not call["id"]:
                call["id"] = f"call_{len(self.state.tool_calls)}_{position}"
        return text, ordered

    # ------------------------------------------------------------------
    # Tool dispatch
    # ------------------------------------------------------------------

    def _run_tool_calls(self, calls: list[dict]) -> list[dict]:
        """
        Execute tool calls in order. Failures are recorded on the tool call
        record by the registry and returned to the model as tool output.
        """
        results: list[dict] = []
        for call in calls:
            name = call["name"]
            try:
                display.tool_call(name, json.loads(call["arguments"] or "{}"))
            except json.JSONDecodeError:
                display.tool_call(name, {"raw": call["arguments"]})

            try:
                result = self.registry.execute(name, call["arguments"])
            except Exception as exc:
                content = f"Error: {exc}"
                display.tool_error(name, str(exc))
            else:
                content = _serialize_result(result)
                display.tool_result(result)

            results.append({"role": "tool", "tool_call_id": call["id"], "content": content})
        return results

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def _checkpoint(self, trace: list[dict]) -> None:
        if self.control is None:
            return
        if self.control.paused:
            display.run_paused()
            self.control.wait_until_resumed()
        for text in self.control.drain():
            display.message_injected(text)
            message = {"role": "user", "content": text}
            trace.append(message)
            self.state.transcript.append(message)

    def generate(self, attempt: int, tail: list[dict]) -> str:
        """
        Run model steps until the model answers without calling tools or the
        step limit is hit. Returns the text of the last step.
        """
        self.state.streaming_text = ""
        self.state.notify()

        trace: list[dict] = []
        text = ""
        for step in range(1, self.max_steps + 1):
            self._checkpoint(trace)
            messages = self.conversation(tail + trace)
            display.model_step(attempt, step, len(messages))

            text, calls = self._stream_step(messages)
            if not calls:
                self.state.transcript.append({"role": "assistant", "content": text})
                return text

            # Logged before dispatch so tools see the call that invoked them.
            request = _assistant_tool_message(text, calls)
            trace.append(request)
            self.state.transcript.append(request)
            results = self._run_tool_calls(calls)
            trace.extend(results)
            self.state.transcript.extend(results)

        display.step_limit_reached(self.max_steps)
        return text

    def validate(self, text: str) -> Any:
        """Parse `text` as JSON and validate it against the response schema."""
        return self._adapter.validate_python(extract_json(text))

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def execute(self, turn_text: str) -> Any:
        """
        Generate a response for `turn_text`, retrying on schema failures.

        Without a response schema the first attempt's text is returned as is.
        Raises SchemaValidationError after max_retries + 1 rejected attempts.
        """
        self.state.current_prompt = turn_text
        turn = {"role": "user", "content": turn_text}
        tail = [turn]
        total = self.max_retries + 1

        for attempt in range(1, total + 1):
            text = self.generate(attempt, tail)
            if self._adapter is None:
                return text

            try:
                return self.validate(text)
            except ResponseParseError as exc:
                error_text = str(exc)
                feedback = format_parse_error(exc)
            except ValidationError as exc:
                error_text = feedback = format_validation_error(exc)

            self.state.validation_attempts.append(
                ValidationAttempt(attempt=attempt, response=text, error=error_text)
            )
            self.state.notify()
            display.validation_failed(attempt, total, error_text)

            if attempt == total:
                raise SchemaValidationError(total, error_text)

            display.retrying(attempt + 1)
            tail = [
                turn,
                {"role": "assistant", "content": text},
                {"role": "user", "content": feedback},
            ]


# ---------------------------------------------------------------------------
# run_prompt
# ---------------------------------------------------------------------------


def _prepare(
    prompt_fn: PromptFn,
    model: str,
    state: ExecutionState,
    response_schema: Any,
    system: Optional[list[str]],
    plugins: Optional[list[Plugin]],
    control: Optional[RunControl],
    client: Optional[OpenAI],
    args: Optional[dict],
) -> tuple[Agent, str]:
    """Resolve the model and run the prompt function. Returns the agent and turn text."""
    handle = load_model(model, client=client)

    registry = ToolRegistry(state)
    hooks = HookPipeline()
    runner = partial(run_prompt, client=client) if client is not None else run_prompt
    ctx = PromptContext(state, registry, hooks, runner=runner, args=args, client=client)

    system_prompts = list(system or [])
    if plugins:
        system_prompts.extend(load_plugins(ctx, plugins))

    turn_text = prompt_fn(ctx)

    if response_schema is not None:
        system_prompts.append(create_schema_instructions(response_schema))

    agent = Agent(
        model=handle,
        state=state,
        registry=registry,
        hooks=hooks,
        system_prompts=system_prompts,
        response_schema=response_schema,
        control=control,
    )
    return agent, turn_text


def run_prompt(
    prompt_fn: PromptFn,
    model: str,
    response_schema: Any = None,
    system: Optional[list[str]] = None,
    label: Optional[str] = None,
    plugins: Optional[list[Plugin]] = None,
    control: Optional[RunControl] = None,
    on_update: Optional[Callable[[ExecutionState], None]] = None,
    state: Optional[ExecutionState] = None,
    client: Optional[OpenAI] = None,
    args: Optional[dict] = None,
) -> Any:
    """
    Build and execute one orchestration run.

    `prompt_fn(ctx)` registers messages, variables, tools, hooks and task
    lists on the PromptContext and returns the user-turn text. Returns the
    final text, or the validated value when `response_schema` is given.

    Example:
        result = run_prompt(
            lambda ctx: ctx.render("What is the capital of France?"),
            model="openai:gpt-4o-mini",
            system=["You are a helpful geography assistant."],
        )
    """
    if state is None:
        state = ExecutionState(label=label)
    elif label and state.label is None:
        state.label = label
    if on_update is not None:
        state.subscribe(on_update)

    # Setup failures (bad model, empty task list, duplicate tool) are recorded
    # on the state like any other fatal error, before a model call is made.
    try:
        agent, turn_text = _prepare(
            prompt_fn, model, state, response_schema, system, plugins, control, client, args
        )
        display.banner(agent.model.name, state.label, agent.registry.names)
        result = agent.execute(turn_text)
    except Exception as exc:
        state.error = str(exc)
        state.notify()
        display.halt(str(exc))
        raise

    state.response = result
    state.notify()
    display.final_result(result)
    return result
