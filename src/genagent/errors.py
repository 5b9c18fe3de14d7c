# errors.py
# Exception taxonomy for the orchestration core.
#
# Configuration errors are raised before any model call. Tool errors are
# absorbed into the conversation. Schema errors are retried and only raised
# once the budget is spent. Task-state mistakes are never raised at all.


class GenAgentError(Exception):
    """Base class for every error raised by genagent."""


class ConfigurationError(GenAgentError):
    """Raised synchronously for invalid run setup. Always fatal."""


class DuplicateToolError(ConfigurationError):
    """Raised when a tool name is registered twice in the same run."""


class ToolValidationError(GenAgentError):
    """Raised when model-supplied tool arguments do not match the tool schema."""

    def __init__(self, tool: str, fields: list[str], detail: str = "") -> None:
        self.tool = tool
        self.fields = fields
        names = ", ".join(fields) if fields else "arguments"
        message = f"Invalid arguments for tool '{tool}': {names}"
        if detail:
            message += f"\n{detail}"
        super().__init__(message)


class SchemaValidationError(GenAgentError):
    """Raised when no response satisfied the schema within the retry budget."""

    def __init__(self, attempts: int, last_error: str) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Failed to get valid response after {attempts} attempts. "
            f"Last error: {last_error}"
        )
