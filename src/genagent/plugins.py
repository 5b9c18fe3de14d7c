# plugins.py
# Reusable bundles of tools, hooks and a system prompt.

from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field

from genagent.hooks import Hook


class PluginTool(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    description: str
    schema_model: type[BaseModel]
    executor: Callable[[dict], Any]


class Plugin(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    system: str = ""
    tools: list[PluginTool] = Field(default_factory=list)
    hooks: list[Hook] = Field(default_factory=list)


def load_plugins(ctx, plugins: list[Plugin]) -> list[str]:
    """Register every plugin's tools and hooks on `ctx`; return their system prompts."""
    system_prompts: list[str] = []
    for plugin in plugins:
        for tool in plugin.tools:
            ctx.def_tool(tool.name, tool.description, tool.schema_model, tool.executor)
        for hook in plugin.hooks:
            ctx.def_hook(hook)
        if plugin.system:
            system_prompts.append(f"# {plugin.name}\n\n{plugin.system}")
    return system_prompts
