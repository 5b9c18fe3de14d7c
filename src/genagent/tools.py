# tools.py
# Tool registry for one run.
#
# Every tool call from the model goes through ToolRegistry.execute(), which
# validates arguments, records the call on the shared ExecutionState and
# resolves the record in place when the executor settles.

import json
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, ValidationError

from genagent.errors import DuplicateToolError, ToolValidationError
from genagent.models import ExecutionState, ToolCallRecord

Executor = Callable[..., Any]


class ToolDefinition(BaseModel):
    """A named, schema-validated function the model may invoke."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    name: str
    description: str
    schema_model: type[BaseModel]
    executor: Executor
    # Sub-agent tools receive the live ToolCallRecord as a second argument.
    wants_record: bool = False

    def to_provider_format(self) -> dict:
        parameters = self.schema_model.model_json_schema()
        parameters.pop("title", None)
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": parameters,
            },
        }


def _error_fields(exc: ValidationError) -> list[str]:
    fields: list[str] = []
    for issue in exc.errors():
        path = ".".join(str(part) for part in issue["loc"]) or "root"
        if path not in fields:
            fields.append(path)
    return fields


class ToolRegistry:
    """
    Ordered name → ToolDefinition map, built once per run.

    The registry is passed by reference to the prompt context and the engine;
    it is never recreated mid-run.
    """

    def __init__(self, state: ExecutionState) -> None:
        self._state = state
        self._tools: dict[str, ToolDefinition] = {}

    def register(
        self,
        name: str,
        description: str,
        schema_model: type[BaseModel],
        executor: Executor,
        wants_record: bool = False,
    ) -> ToolDefinition:
        if name in self._tools:
            raise DuplicateToolError(f"Tool '{name}' is already registered for this run.")
        definition = ToolDefinition(
            name=name,
            description=description,
            schema_model=schema_model,
            executor=executor,
            wants_record=wants_record,
        )
        self._tools[name] = definition
        self._state.tools.append(name)
        return definition

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def get(self, name: str) -> ToolDefinition | None:
        return self._tools.get(name)

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def provider_tools(self) -> list[dict]:
        return [tool.to_provider_format() for tool in self._tools.values()]

    # ------------------------------------------------------------------
    # Invocation
    # ------------------------------------------------------------------

    def validate(self, name: str, raw_args: str | dict | None) -> dict:
        """
        Parse and validate model-supplied arguments.

        Raises ToolValidationError naming the offending fields. The returned
        dict is the validated model dumped back to plain data.
        """
        definition = self._tools[name]
        if isinstance(raw_args, str):
            try:
                raw_args = json.loads(raw_args) if raw_args.strip() else {}
            except json.JSONDecodeError as exc:
                raise ToolValidationError(name, [], f"Arguments are not valid JSON: {exc}") from exc
        try:
            validated = definition.schema_model.model_validate(raw_args or {})
        except ValidationError as exc:
            raise ToolValidationError(name, _error_fields(exc), str(exc)) from exc
        return validated.model_dump()

    def execute(self, name: str, raw_args: str | dict | None) -> Any:
        """
        Validate, record and run one tool call.

        The ToolCallRecord is pushed before the executor runs so observers
        see it pending. Executor exceptions are recorded then re-raised.
        """
        if name not in self._tools:
            raise ToolValidationError(name, [], f"Tool '{name}' is not registered.")
        args = self.validate(name, raw_args)
        definition = self._tools[name]

        record = ToolCallRecord(tool=name, args=args)
        self._state.tool_calls.append(record)
        self._state.notify()

        try:
            if definition.wants_record:
                result = definition.executor(args, record)
            else:
                result = definition.executor(args)
        except Exception as exc:
            record.error = str(exc) or exc.__class__.__name__
            self._state.notify()
            raise

        record.result = result
        self._state.notify()
        return result
