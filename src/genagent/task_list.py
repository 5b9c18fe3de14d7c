# task_list.py
# Sequential, pre-validated task list.
#
# The model works through a fixed list of tasks strictly in order and submits
# each result through the finishTask tool. A task's validation function gates
# the cursor: rejected results leave it in place and surface feedback on the
# next turn. The list is also a history-replacing hook: every time the
# conversation is about to be sent, snapshot() rebuilds it from this state
# alone, discarding raw prior turns.

from typing import Any, Iterable, Optional

from pydantic import BaseModel, Field

from genagent import display
from genagent.errors import ConfigurationError
from genagent.models import CompletedTask, ExecutionState, Message, Task
from genagent.providers import ModelHandle, load_model

HISTORY_PLACEHOLDER = "<TASK_HISTORY>"

INSTRUCTIONS = "\n".join(
    [
        "You are working through a task list. Each task must be completed in order.",
        "Use the finishTask tool to submit your result for the current task.",
        "If validation fails, you will receive feedback to correct your result.",
        "Focus only on the current task, but be aware of upcoming tasks.",
        "Previous tasks are summarized below for context.",
    ]
)


class FinishTaskArgs(BaseModel):
    result: str = Field(..., description="The result of the current task")


class CompactionConfig(BaseModel):
    """
    Summarise each finished task's conversation with a second model.

    `prompt` must contain <TASK_HISTORY>, which is replaced by the task's
    transcript. `model` is an alias or a "provider:modelId" string.
    """

    prompt: str
    model: str


# ---------------------------------------------------------------------------
# Compaction
# ---------------------------------------------------------------------------


def format_history(entries: list[dict]) -> str:
    lines = []
    for entry in entries:
        content = entry.get("content") or ""
        calls = entry.get("tool_calls")
        if calls:
            invoked = ", ".join(
                f'{call["function"]["name"]}({call["function"]["arguments"]})' for call in calls
            )
            content = f"{content}\n{invoked}".strip()
        lines.append(f"[{entry['role']}]: {content}")
    return "\n\n".join(lines)


def compact_history(
    entries: list[dict], compaction: CompactionConfig, model: ModelHandle, task: str
) -> str:
    """
    Ask `model` to condense one task's transcript. Never raises: a failed
    call yields a short placeholder summary instead.
    """
    prompt = compaction.prompt.replace(HISTORY_PLACEHOLDER, format_history(entries))
    try:
        stream = model.client.chat.completions.create(
            model=model.model_id,
            messages=[{"role": "user", "content": prompt}],
            stream=True,
        )
        text = ""
        for chunk in stream:
            if chunk.choices and chunk.choices[0].delta.content:
                text += chunk.choices[0].delta.content
    except Exception as exc:
        display.compaction_failed(task, str(exc))
        return f"Task completed with {len(entries)} messages. Compaction failed."
    return text


class TaskList:
    """
    Cursor over an immutable task array.

    `current_index` only moves forward and always equals the number of
    completed tasks. The list is finished when the cursor reaches len(tasks).
    """

    def __init__(
        self,
        tasks: Iterable[Task | dict[str, Any]],
        compaction: Optional[CompactionConfig | dict[str, Any]] = None,
    ) -> None:
        self.tasks: tuple[Task, ...] = tuple(
            t if isinstance(t, Task) else Task.model_validate(t) for t in tasks
        )
        if not self.tasks:
            raise ConfigurationError("Task list must contain at least one task")
        self.current_index = 0
        self.completed_tasks: list[CompletedTask] = []
        self.pending_feedback: Optional[str] = None
        self.compaction: Optional[CompactionConfig] = (
            CompactionConfig.model_validate(compaction) if isinstance(compaction, dict) else compaction
        )
        self._compactor: Optional[ModelHandle] = None
        self._state: Optional[ExecutionState] = None
        # Transcript offset where the current task began.
        self._history_start = 0

    @property
    def is_complete(self) -> bool:
        return self.current_index >= len(self.tasks)

    @property
    def current_task(self) -> Task | None:
        if self.is_complete:
            return None
        return self.tasks[self.current_index]

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def attach(self, ctx) -> None:
        """Register finishTask, the history hook and the mode banner on `ctx`."""
        self._state = ctx.state
        self._history_start = len(ctx.state.transcript)
        if self.compaction is not None:
            self._compactor = load_model(self.compaction.model, client=ctx.client)

        ctx.def_tool(
            "finishTask",
            "Complete the current task with a result. "
            "The validation function will check if the result is correct.",
            FinishTaskArgs,
            lambda args: self.finish_task(args["result"]),
        )
        ctx.def_hook(self)
        ctx.def_message(
            "system",
            "\n".join(
                [
                    "TASK LIST MODE ACTIVE",
                    f"Total tasks: {len(self.tasks)}",
                    "Complete each task in order using the finishTask tool.",
                    "Each task will be validated before moving to the next one.",
                ]
            ),
        )

    # ------------------------------------------------------------------
    # finishTask
    # ------------------------------------------------------------------

    def finish_task(self, result: str) -> str:
        task = self.current_task
        if task is None:
            return "All tasks are already completed. There is no current task."

        feedback = task.validation(result)
        if feedback:
            self.pending_feedback = feedback
            return (
                f"Validation failed: {feedback}\n\n"
                "Please review the task and provide a corrected result."
            )

        self.completed_tasks.append(
            CompletedTask(task=task.task, result=result, compacted_history=self._compact(task))
        )
        self.pending_feedback = None
        self.current_index += 1

        if self.is_complete:
            return "✓ All tasks completed successfully! The task list is complete."
        return f"✓ Task completed successfully!\n\nNext task: {self.tasks[self.current_index].task}"

    def _compact(self, task: Task) -> Optional[str]:
        if self._state is None:
            return None
        history = self._state.transcript[self._history_start :]
        self._history_start = len(self._state.transcript)
        if self._compactor is None or not history:
            return None
        return compact_history(history, self.compaction, self._compactor, task.task)

    # ------------------------------------------------------------------
    # History hook
    # ------------------------------------------------------------------

    def snapshot(self) -> list[Message]:
        total = len(self.tasks)
        messages = [Message(role="system", content=INSTRUCTIONS)]

        if self.completed_tasks:
            summaries = "\n\n".join(
                f"Task {i}: {done.task}\n{done.compacted_history}"
                if done.compacted_history
                else f"Task {i}: {done.task}\nResult: {done.result}"
                for i, done in enumerate(self.completed_tasks, start=1)
            )
            messages.append(
                Message(
                    role="system",
                    content=f"Completed tasks ({len(self.completed_tasks)}/{total}):\n\n{summaries}",
                )
            )

        if self.current_index < total - 1:
            upcoming = "\n".join(
                f"{position}. {task.task}"
                for position, task in enumerate(
                    self.tasks[self.current_index + 1 :], start=self.current_index + 2
                )
            )
            messages.append(Message(role="system", content=f"Upcoming tasks:\n{upcoming}"))

        task = self.current_task
        if task is not None:
            messages.append(
                Message(role="user", content=f"[Task {self.current_index + 1}/{total}] {task.task}")
            )
            if self.pending_feedback:
                messages.append(
                    Message(
                        role="system",
                        content=f"Previous attempt feedback: {self.pending_feedback}",
                    )
                )

        return messages

    def __call__(self, messages: list[Message]) -> list[Message]:
        return self.snapshot()
