"""Agent loop and tool contract."""

from .tools import Tool, ToolResult, ToolRegistry, NoArguments
from .loop import AgentLoop, AgentResult, LoopState, MaxIterationsExceeded, InvocationTimeout
from .prompt import SYSTEM_PROMPT, strip_reasoning

__all__ = [
    "Tool",
    "ToolResult",
    "ToolRegistry",
    "NoArguments",
    "AgentLoop",
    "AgentResult",
    "LoopState",
    "MaxIterationsExceeded",
    "InvocationTimeout",
    "SYSTEM_PROMPT",
    "strip_reasoning",
]
