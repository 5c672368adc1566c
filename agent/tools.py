"""Tool contract and registry for the agent loop."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Type

from pydantic import BaseModel, ValidationError

from llm.base_client import ToolCall

logger = logging.getLogger(__name__)


class NoArguments(BaseModel):
    """Input model for tools that take no parameters."""


class ToolResult(BaseModel):
    """Result from tool execution."""
    tool_name: str
    success: bool
    content: str
    error: Optional[str] = None


class Tool(ABC):
    """
    Abstract base class for tools.

    Subclasses declare a pydantic ``args_model``; raw model arguments are
    validated against it before ``execute`` runs. ``run`` never raises:
    every failure comes back as text the model can read.
    """
    name: str
    description: str
    args_model: Type[BaseModel] = NoArguments
    requires_owner: bool = True

    @abstractmethod
    def execute(self, args: BaseModel, owner_id: Optional[int]) -> str:
        """Execute the tool with validated arguments."""
        pass

    @property
    def parameters(self) -> Dict[str, Any]:
        """JSON schema of the tool's arguments."""
        schema = self.args_model.model_json_schema(by_alias=True)
        schema.pop("title", None)
        schema.setdefault("properties", {})
        schema["type"] = "object"
        return schema

    def get_definition(self) -> Dict:
        """Get OpenAI-compatible tool definition."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters
            }
        }

    def run(self, raw_args: Optional[Dict[str, Any]], owner_id: Optional[int]) -> ToolResult:
        """Validate arguments and execute, converting every failure to text."""
        try:
            args = self.args_model.model_validate(raw_args or {})
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'arguments'}: {err['msg']}"
                for err in e.errors()
            )
            message = f"Error: invalid arguments for {self.name}: {problems}"
            logger.warning(message)
            return ToolResult(tool_name=self.name, success=False, content=message, error=problems)

        if self.requires_owner and owner_id is None:
            message = "Error: User ID not available."
            return ToolResult(tool_name=self.name, success=False, content=message, error=message)

        try:
            content = self.execute(args, owner_id)
        except Exception as e:
            logger.error(f"Tool {self.name} error: {e}")
            return ToolResult(
                tool_name=self.name,
                success=False,
                content=f"Error running {self.name}: {e}",
                error=str(e)
            )

        return ToolResult(tool_name=self.name, success=True, content=str(content))


class ToolRegistry:
    """Fixed set of named tools available to the model."""

    def __init__(self, tools: Optional[Iterable[Tool]] = None):
        self._tools: Dict[str, Tool] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def names(self) -> List[str]:
        return list(self._tools.keys())

    def definitions(self) -> List[Dict]:
        """Tool definitions bound to every model call."""
        return [tool.get_definition() for tool in self._tools.values()]

    def dispatch(self, call: ToolCall, owner_id: Optional[int]) -> ToolResult:
        """Run one requested call. Unknown tools yield an error result."""
        tool = self._tools.get(call.name)
        if tool is None:
            message = f"Error: Unknown tool '{call.name}'"
            logger.warning(message)
            return ToolResult(tool_name=call.name, success=False, content=message, error=message)

        logger.info(f"Running tool {call.name} for owner {owner_id}")
        return tool.run(call.arguments, owner_id)

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools
