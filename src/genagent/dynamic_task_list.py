# dynamic_task_list.py
# Agent-directed task list.
#
# The model creates, edits, starts, completes and deletes its own tasks
# through six tools. Every tool answers with text, including mistakes such
# as touching an unknown or finished task, so the model can correct itself
# on the next turn. Once the first task exists the list also replaces the
# visible history, re-presenting outstanding work until every task is done.

import time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from genagent.models import DynamicTask, Message, TaskStatus

TOOL_NAMES = ("createTask", "updateTask", "startTask", "completeTask", "getTaskList", "deleteTask")

INSTRUCTIONS = "\n".join(
    [
        "You are working through a dynamic task list that you manage yourself.",
        "Call startTask before working on a task and completeTask with its result when done.",
        "Add tasks with createTask as you discover them, and remove obsolete pending tasks with deleteTask.",
        "Focus on the current task. Completed tasks are summarized below for context.",
    ]
)


# ---------------------------------------------------------------------------
# Tool argument schemas
# ---------------------------------------------------------------------------


class _TaskIdArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    task_id: str | int = Field(..., alias="taskId", description="The ID of the task")


class CreateTaskArgs(BaseModel):
    description: str = Field(..., description="Clear description of what needs to be done")


class UpdateTaskArgs(_TaskIdArgs):
    new_description: str = Field(
        ..., alias="newDescription", description="The new description for the task"
    )


class StartTaskArgs(_TaskIdArgs):
    pass


class CompleteTaskArgs(_TaskIdArgs):
    result: str = Field(..., description="The result or outcome of completing the task")


class DeleteTaskArgs(_TaskIdArgs):
    pass


class GetTaskListArgs(BaseModel):
    pass


def normalize_task_id(task_id: str | int) -> str:
    """Models often drop the prefix; accept 3 and "3" for "task-3"."""
    if isinstance(task_id, int):
        return f"task-{task_id}"
    task_id = task_id.strip()
    if task_id.isdigit():
        return f"task-{task_id}"
    return task_id


# ---------------------------------------------------------------------------
# DynamicTaskList
# ---------------------------------------------------------------------------


class DynamicTaskList:
    def __init__(self) -> None:
        self.tasks: dict[str, DynamicTask] = {}
        self.order: list[str] = []
        self.next_id = 1
        self.started = False

    def _ordered(self) -> list[DynamicTask]:
        return [self.tasks[task_id] for task_id in self.order]

    def _with_status(self, status: TaskStatus) -> list[DynamicTask]:
        return [task for task in self._ordered() if task.status == status]

    @property
    def total(self) -> int:
        return len(self.order)

    def counts(self) -> dict[TaskStatus, int]:
        counts = {status: 0 for status in TaskStatus}
        for task in self._ordered():
            counts[task.status] += 1
        return counts

    @property
    def is_complete(self) -> bool:
        return self.counts()[TaskStatus.COMPLETED] == self.total

    @property
    def current_task(self) -> Optional[DynamicTask]:
        """The first in-progress task, else the first pending one."""
        in_progress = self._with_status(TaskStatus.IN_PROGRESS)
        if in_progress:
            return in_progress[0]
        pending = self._with_status(TaskStatus.PENDING)
        return pending[0] if pending else None

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def attach(self, ctx) -> None:
        ctx.def_tool(
            "createTask",
            "Create a new task and add it to the task list. Returns the task ID.",
            CreateTaskArgs,
            lambda args: self.create_task(args["description"]),
        )
        ctx.def_tool(
            "updateTask",
            "Update the description of a pending task. Cannot update completed or in-progress tasks.",
            UpdateTaskArgs,
            lambda args: self.update_task(args["task_id"], args["new_description"]),
        )
        ctx.def_tool(
            "startTask",
            "Mark a pending task as in-progress. You should call this before working on a task.",
            StartTaskArgs,
            lambda args: self.start_task(args["task_id"]),
        )
        ctx.def_tool(
            "completeTask",
            "Mark a task as completed with a result. The task should be in-progress before completing.",
            CompleteTaskArgs,
            lambda args: self.complete_task(args["task_id"], args["result"]),
        )
        ctx.def_tool(
            "getTaskList",
            "Get the current state of all tasks in the task list.",
            GetTaskListArgs,
            lambda args: self.get_task_list(),
        )
        ctx.def_tool(
            "deleteTask",
            "Delete a pending task from the list. Cannot delete completed or in-progress tasks.",
            DeleteTaskArgs,
            lambda args: self.delete_task(args["task_id"]),
        )
        ctx.def_hook(self)
        ctx.def_message(
            "system",
            "\n".join(
                [
                    "DYNAMIC TASK LIST MODE ACTIVE",
                    "",
                    "You have access to a dynamic task list system. You can:",
                    "- createTask: Add new tasks as you discover them",
                    "- updateTask: Modify pending task descriptions",
                    "- startTask: Mark a task as in-progress before working on it",
                    "- completeTask: Mark a task as done with results",
                    "- getTaskList: View current task list state",
                    "- deleteTask: Remove pending tasks that are no longer needed",
                    "",
                    "Work through tasks systematically and add new ones as needed.",
                ]
            ),
        )

    # ------------------------------------------------------------------
    # Tools
    # ------------------------------------------------------------------

    def create_task(self, description: str) -> str:
        task_id = f"task-{self.next_id}"
        self.next_id += 1
        self.tasks[task_id] = DynamicTask(id=task_id, description=description, created_at=time.time())
        self.order.append(task_id)
        self.started = True
        return f'✓ Created task {task_id}: "{description}"\n\nTotal tasks: {self.total}'

    def update_task(self, task_id: str | int, new_description: str) -> str:
        task_id = normalize_task_id(task_id)
        task = self.tasks.get(task_id)
        if task is None:
            return f"✗ Error: Task {task_id} not found."
        if task.status == TaskStatus.COMPLETED:
            return f"✗ Error: Cannot update completed task {task_id}."
        if task.status == TaskStatus.IN_PROGRESS:
            return (
                f"✗ Error: Cannot update in-progress task {task_id}. "
                "Complete it first or create a new task."
            )
        old_description = task.description
        task.description = new_description
        return f'✓ Updated task {task_id}:\n  Old: "{old_description}"\n  New: "{new_description}"'

    def start_task(self, task_id: str | int) -> str:
        task_id = normalize_task_id(task_id)
        task = self.tasks.get(task_id)
        if task is None:
            return f"✗ Error: Task {task_id} not found."
        if task.status == TaskStatus.COMPLETED:
            return f"✗ Error: Task {task_id} is already completed."
        if task.status == TaskStatus.IN_PROGRESS:
            return f"⚠ Warning: Task {task_id} is already in progress."
        task.status = TaskStatus.IN_PROGRESS
        return f'✓ Started task {task_id}: "{task.description}"'

    def complete_task(self, task_id: str | int, result: str) -> str:
        task_id = normalize_task_id(task_id)
        task = self.tasks.get(task_id)
        if task is None:
            return f"✗ Error: Task {task_id} not found."
        if task.status == TaskStatus.COMPLETED:
            return f"✗ Error: Task {task_id} is already completed."

        # pending → completed is allowed; starting first is only encouraged.
        task.status = TaskStatus.COMPLETED
        task.result = result
        task.completed_at = time.time()

        completed = self.counts()[TaskStatus.COMPLETED]
        if completed == self.total:
            return (
                f"✓ Task {task_id} completed!\n  Result: {result}\n\n"
                f"🎉 All tasks completed! ({completed}/{self.total})"
            )
        return (
            f"✓ Task {task_id} completed!\n  Result: {result}\n\n"
            f"Progress: {completed}/{self.total} tasks completed"
        )

    def delete_task(self, task_id: str | int) -> str:
        task_id = normalize_task_id(task_id)
        task = self.tasks.get(task_id)
        if task is None:
            return f"✗ Error: Task {task_id} not found."
        if task.status == TaskStatus.COMPLETED:
            return f"✗ Error: Cannot delete completed task {task_id}."
        if task.status == TaskStatus.IN_PROGRESS:
            return f"✗ Error: Cannot delete in-progress task {task_id}."
        del self.tasks[task_id]
        self.order.remove(task_id)
        return f'✓ Deleted task {task_id}: "{task.description}"\n\nRemaining tasks: {self.total}'

    def get_task_list(self) -> str:
        if not self.order:
            return "No tasks in the list."

        completed = [
            f"✓ [{t.id}] {t.description}\n  Result: {t.result}"
            for t in self._with_status(TaskStatus.COMPLETED)
        ]
        in_progress = [f"→ [{t.id}] {t.description}" for t in self._with_status(TaskStatus.IN_PROGRESS)]
        pending = [f"○ [{t.id}] {t.description}" for t in self._with_status(TaskStatus.PENDING)]

        parts = [f"Task List Overview: {len(completed)}/{self.total} completed\n"]
        if completed:
            parts.append(f"Completed ({len(completed)}):\n" + "\n".join(completed))
        if in_progress:
            parts.append(f"In Progress ({len(in_progress)}):\n" + "\n".join(in_progress))
        if pending:
            parts.append(f"Pending ({len(pending)}):\n" + "\n".join(pending))
        return "\n\n".join(parts)

    # ------------------------------------------------------------------
    # History hook
    # ------------------------------------------------------------------

    def snapshot(self) -> Optional[list[Message]]:
        """Rebuilt visible history, or None while the list holds no tasks."""
        if not self.started or self.total == 0:
            return None

        messages = [Message(role="system", content=INSTRUCTIONS)]

        completed = self._with_status(TaskStatus.COMPLETED)
        if completed:
            summaries = "\n\n".join(
                f"[{t.id}] {t.description}\nResult: {t.result}" for t in completed
            )
            messages.append(
                Message(
                    role="system",
                    content=f"Completed tasks ({len(completed)}/{self.total}):\n\n{summaries}",
                )
            )

        current = self.current_task
        upcoming = [
            t for t in self._ordered()
            if t.status != TaskStatus.COMPLETED and (current is None or t.id != current.id)
        ]
        if upcoming:
            listing = "\n".join(f"- [{t.id}] {t.description} ({t.status.value})" for t in upcoming)
            messages.append(Message(role="system", content=f"Upcoming tasks:\n{listing}"))

        if current is None:
            messages.append(
                Message(
                    role="user",
                    content=(
                        "All tasks in the task list are completed. "
                        "Provide a final summary of the work and its results."
                    ),
                )
            )
            return messages

        if current.status == TaskStatus.IN_PROGRESS:
            messages.append(
                Message(
                    role="system",
                    content=(
                        f"Reminder: task {current.id} is already in progress. "
                        "Finish it and call completeTask with its result."
                    ),
                )
            )
        messages.append(
            Message(role="user", content=f"[Current task {current.id}] {current.description}")
        )
        return messages

    def __call__(self, messages: list[Message]) -> Optional[list[Message]]:
        return self.snapshot()
