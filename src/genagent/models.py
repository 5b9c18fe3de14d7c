# models.py
# Data contracts for the genagent orchestration core.
# No orchestration logic lives here: schema, state and change notification.

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

Role = Literal["system", "user", "assistant"]


class Message(BaseModel):
    """A single entry of the visible conversation history."""

    role: Role
    content: str


class ToolCallRecord(BaseModel):
    """
    One tool invocation as seen by observers.

    Pushed before the executor runs and mutated in place when it settles,
    so anyone holding the record sees the late result or error.
    """

    tool: str
    args: dict = Field(default_factory=dict)
    result: Any = None
    error: Optional[str] = None
    subagent_state: Optional["ExecutionState"] = None

    @property
    def pending(self) -> bool:
        return self.result is None and self.error is None


class ValidationAttempt(BaseModel):
    """A failed response-schema validation, one per rejected attempt."""

    attempt: int
    response: str
    error: str


class Task(BaseModel):
    """A fixed task of a sequential task list."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    task: str
    validation: Callable[[str], Optional[str]] = Field(
        default=lambda result: None,
        description="Returns feedback text when the result is rejected, None otherwise.",
    )


class CompletedTask(BaseModel):
    task: str
    result: str
    compacted_history: Optional[str] = None


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class DynamicTask(BaseModel):
    """An agent-created task. Status only ever moves forward."""

    id: str
    description: str
    status: TaskStatus = TaskStatus.PENDING
    result: Optional[str] = None
    created_at: float
    completed_at: Optional[float] = None


class ExecutionState(BaseModel):
    """
    Shared mutable record of one orchestration run.

    Every component writes here; the terminal layer and parent runs observe
    it through listeners registered with subscribe(). A sub-agent owns its
    own instance.
    """

    messages: list[Message] = Field(default_factory=list)
    tools: list[str] = Field(default_factory=list)
    current_prompt: str = ""
    response: Any = None
    error: Optional[str] = None
    label: Optional[str] = None
    streaming_text: str = ""
    tool_calls: list[ToolCallRecord] = Field(default_factory=list)
    validation_attempts: list[ValidationAttempt] = Field(default_factory=list)
    # Append-only log of every model-visible step message (tool calls, tool
    # results, injected turns) across all attempts.
    transcript: list[dict] = Field(default_factory=list)

    _listeners: list[Callable[["ExecutionState"], None]] = PrivateAttr(default_factory=list)

    def subscribe(self, listener: Callable[["ExecutionState"], None]) -> None:
        self._listeners.append(listener)

    def notify(self) -> None:
        for listener in self._listeners:
            listener(self)


ToolCallRecord.model_rebuild()
ExecutionState.model_rebuild()
