# context.py
# The handle passed to a caller's prompt function.
#
# PromptContext is the message/variable builder for one run and the only
# place tools, hooks, task lists and sub-agents get registered. Everything it
# builds lands in the run's ExecutionState, ToolRegistry and HookPipeline,
# which the engine then consumes.

from typing import Any, Callable, Optional, Sequence

from openai import OpenAI
from pydantic import BaseModel

from genagent import config, display
from genagent.dynamic_task_list import DynamicTaskList
from genagent.errors import ConfigurationError
from genagent.hooks import Hook, HookPipeline
from genagent.models import ExecutionState, Message, Task, ToolCallRecord
from genagent.task_list import CompactionConfig, TaskList
from genagent.tools import ToolRegistry

VARIABLES_INSTRUCTION = (
    "Variables have been defined and will be prepended to the user prompt in the format "
    '"VARIABLE_NAME: content". You can reference these variables in your response using '
    "the $VARIABLE_NAME syntax shown in the prompt."
)

# Signature of the nested-run entry point used by sub-agent tools.
AgentRunner = Callable[..., Any]


class PromptContext:
    def __init__(
        self,
        state: ExecutionState,
        registry: ToolRegistry,
        hooks: HookPipeline,
        runner: Optional[AgentRunner] = None,
        args: Optional[dict] = None,
        client: Optional[OpenAI] = None,
    ) -> None:
        self.state = state
        self.registry = registry
        self.hooks = hooks
        self.args = args
        # Shared with auxiliary model calls such as task-list compaction.
        self.client = client
        self._runner = runner
        self._variables: dict[str, str] = {}

    # ------------------------------------------------------------------
    # Messages and variables
    # ------------------------------------------------------------------

    def def_message(self, role: str, content: str) -> None:
        self.state.messages.append(Message(role=role, content=content))

    def def_var(self, name: str, content: str) -> None:
        if not self._variables:
            self.def_message("system", VARIABLES_INSTRUCTION)
        self._variables[name] = content

    @property
    def variables(self) -> dict[str, str]:
        return dict(self._variables)

    def render(self, parts: str | Sequence[str], *values: Any) -> str:
        """
        Join template `parts` with `values` interleaved positionally, then
        prepend every defined variable as a "NAME: content" block.

        `$NAME` references in the text are left as written.
        """
        if isinstance(parts, str):
            parts = [parts]
        pieces: list[str] = []
        for i, part in enumerate(parts):
            pieces.append(part)
            if i < len(values) and values[i] is not None:
                pieces.append(str(values[i]))
        text = "".join(pieces)

        if self._variables:
            block = "\n\n".join(f"{name}: {content}" for name, content in self._variables.items())
            text = f"{block}\n\n{text}"
        return text

    def prompt(self, parts: str | Sequence[str], *values: Any) -> str:
        """Template-literal style alias for render()."""
        return self.render(parts, *values)

    # ------------------------------------------------------------------
    # Tools and hooks
    # ------------------------------------------------------------------

    def def_tool(
        self,
        name: str,
        description: str,
        schema_model: type[BaseModel],
        executor: Callable[[dict], Any],
    ) -> None:
        self.registry.register(name, description, schema_model, executor)

    def def_hook(self, hook: Hook) -> None:
        self.hooks.register(hook)

    def def_task_list(
        self,
        tasks: Sequence[Task | dict],
        compaction: Optional[CompactionConfig | dict] = None,
    ) -> TaskList:
        task_list = TaskList(tasks, compaction=compaction)
        task_list.attach(self)
        return task_list

    def def_dynamic_task_list(self) -> DynamicTaskList:
        task_list = DynamicTaskList()
        task_list.attach(self)
        return task_list

    # ------------------------------------------------------------------
    # Sub-agents
    # ------------------------------------------------------------------

    def def_agent(
        self,
        name: str,
        description: str,
        input_schema: type[BaseModel],
        fn: Callable[[dict, "PromptContext"], str],
        model: Optional[str] = None,
        response_schema: Any = None,
        system: Optional[list[str]] = None,
        plugins: Optional[list] = None,
    ) -> None:
        """
        Register a tool whose execution is a nested run.

        `fn(args, ctx)` builds the sub-agent's prompt exactly like a top-level
        prompt function, with the tool arguments available as `ctx.args`. The
        nested run gets its own ExecutionState, attached to the parent's tool
        call record for observers.
        """
        if self._runner is None:
            raise ConfigurationError("Sub-agents require a context created by run_prompt().")
        runner = self._runner
        parent = self.state

        agent_model = model or config.DEFAULT_AGENT_MODEL

        def execute(args: dict, record: ToolCallRecord) -> Any:
            child = ExecutionState(label=f"agent-{name}")
            record.subagent_state = child
            # Parent refresh is fire-and-forget.
            child.subscribe(lambda _state: parent.notify())
            display.subagent_start(name, agent_model)
            return runner(
                lambda agent_ctx: fn(args, agent_ctx),
                model=agent_model,
                response_schema=response_schema,
                system=system,
                plugins=plugins,
                label=child.label,
                state=child,
                args=args,
            )

        self.registry.register(name, description, input_schema, execute, wants_record=True)
