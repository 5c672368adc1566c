"""Agent loop alternating model calls and tool execution."""

import json
import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, wait
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

from llm.base_client import (
    BaseLLMClient,
    Message,
    ToolCall,
    FinalAnswer,
    ToolCallsRequested,
    ModelInvocationError,
)
from memory.conversation_store import ConversationMemory, ConversationKey
from memory.models import ConversationTurn
from .prompt import SYSTEM_PROMPT
from .tools import ToolRegistry

logger = logging.getLogger(__name__)


class MaxIterationsExceeded(Exception):
    """The model kept requesting tools past the iteration cap."""


class InvocationTimeout(Exception):
    """Tool dispatch did not finish before its deadline."""


class LoopState(str, Enum):
    CALL_MODEL = "call_model"
    RUN_TOOLS = "run_tools"
    DONE = "done"


class AgentResult(BaseModel):
    """Outcome of one handled message."""
    final_answer: str
    iterations_used: int
    tools_called: List[str] = Field(default_factory=list)


class AgentLoop:
    """
    Answers one user message at a time.

    Each invocation builds the model input from the system prompt, the
    stored conversation history and the new message, then loops: call the
    model; if it asks for tools, run them all concurrently, append their
    results in request order and call the model again; otherwise finish.
    Only the user message and the final answer are written to memory.
    """

    MAX_ITERATIONS = 25

    def __init__(
        self,
        llm_client: BaseLLMClient,
        registry: ToolRegistry,
        memory: ConversationMemory,
        system_prompt: str = SYSTEM_PROMPT,
        max_iterations: int = MAX_ITERATIONS,
        max_identical_tool_calls: int = 3,
        max_tool_workers: int = 4,
        tool_timeout_seconds: Optional[float] = 60.0,
        temperature: float = 0.7,
        max_tokens: int = 4000
    ):
        """
        Initialize agent loop.

        Args:
            llm_client: Model endpoint
            registry: Tools bound to every model call
            memory: Conversation memory read before and written after each message
            system_prompt: System instructions
            max_iterations: Model calls allowed per message
            max_identical_tool_calls: Times one call (name and arguments) may run per message
            max_tool_workers: Threads used to run one turn's tool calls
            tool_timeout_seconds: Deadline for one turn's tool calls (None waits forever)
            temperature: Sampling temperature
            max_tokens: Completion token limit per model call
        """
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")

        self.llm_client = llm_client
        self.registry = registry
        self.memory = memory
        self.system_prompt = system_prompt
        self.max_iterations = max_iterations
        self.max_identical_tool_calls = max_identical_tool_calls
        self.max_tool_workers = max(1, max_tool_workers)
        self.tool_timeout_seconds = tool_timeout_seconds
        self.temperature = temperature
        self.max_tokens = max_tokens

    @staticmethod
    def default_owner(conversation_key: ConversationKey) -> Optional[int]:
        """Private chats share their id with the user, so numeric keys double as owners."""
        try:
            return int(conversation_key)
        except (TypeError, ValueError):
            return None

    def handle_message(
        self,
        conversation_key: ConversationKey,
        user_text: str,
        owner_id: Optional[int] = None
    ) -> str:
        """
        Answer a user message.

        Raises:
            ModelInvocationError: If the model endpoint fails
            MaxIterationsExceeded: If the model never stops requesting tools
            InvocationTimeout: If a turn's tool calls overrun their deadline
        """
        return self.run(conversation_key, user_text, owner_id).final_answer

    def run(
        self,
        conversation_key: ConversationKey,
        user_text: str,
        owner_id: Optional[int] = None
    ) -> AgentResult:
        """Run the loop for one message and record the exchange."""
        if owner_id is None:
            owner_id = self.default_owner(conversation_key)

        history = self.memory.get_context_messages(conversation_key)
        logger.info(f"Processing message for {conversation_key} ({len(history)} previous messages)")

        messages = self._build_initial_messages(history, user_text)
        tool_definitions = self.registry.definitions()
        call_counts: Counter = Counter()
        tools_called: List[str] = []

        state = LoopState.CALL_MODEL
        iterations = 0
        final_answer = ""
        pending: List[ToolCall] = []

        while state != LoopState.DONE:
            if state == LoopState.CALL_MODEL:
                if iterations >= self.max_iterations:
                    logger.warning(f"Agent loop hit {self.max_iterations} iterations for {conversation_key}")
                    raise MaxIterationsExceeded(
                        f"Model requested tools in {self.max_iterations} consecutive turns"
                    )
                iterations += 1
                logger.info(f"Calling model with {len(messages)} messages (iteration {iterations})")

                response = self.llm_client.chat(
                    messages=messages,
                    tools=tool_definitions or None,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens
                )
                turn = response.to_turn()

                if isinstance(turn, FinalAnswer):
                    final_answer = turn.text
                    state = LoopState.DONE
                elif isinstance(turn, ToolCallsRequested):
                    logger.info(f"Tool calls detected: {[call.name for call in turn.calls]}")
                    messages.append(Message(role="assistant", content=turn.text, tool_calls=turn.calls))
                    pending = turn.calls
                    state = LoopState.RUN_TOOLS
                else:
                    raise ModelInvocationError(f"Unrecognised model turn: {type(turn).__name__}")

            elif state == LoopState.RUN_TOOLS:
                tool_messages, executed = self._run_tools(pending, owner_id, call_counts)
                messages.extend(tool_messages)
                tools_called.extend(executed)
                pending = []
                state = LoopState.CALL_MODEL

        self.memory.append(conversation_key, ConversationTurn(role="user", content=user_text))
        self.memory.append(conversation_key, ConversationTurn(role="assistant", content=final_answer))
        logger.info(
            f"Answered {conversation_key} in {iterations} iteration(s), "
            f"tools: {', '.join(tools_called) or 'none'}"
        )

        return AgentResult(
            final_answer=final_answer,
            iterations_used=iterations,
            tools_called=tools_called
        )

    def _build_initial_messages(self, history: List[Message], user_text: str) -> List[Message]:
        messages = [Message(role="system", content=self.system_prompt)]
        messages.extend(msg for msg in history if msg.role != "system")
        messages.append(Message(role="user", content=user_text))
        return messages

    @staticmethod
    def _call_signature(call: ToolCall) -> Tuple[str, str]:
        return call.name, json.dumps(call.arguments, sort_keys=True, default=str)

    def _run_tools(
        self,
        calls: List[ToolCall],
        owner_id: Optional[int],
        call_counts: Counter
    ) -> Tuple[List[Message], List[str]]:
        """
        Run one turn's tool calls concurrently.

        Returns tool messages in the order the calls were requested, and the
        names of the tools actually executed.
        """
        contents: List[Optional[str]] = [None] * len(calls)
        to_dispatch: List[int] = []

        for position, call in enumerate(calls):
            signature = self._call_signature(call)
            call_counts[signature] += 1
            if call_counts[signature] > self.max_identical_tool_calls:
                logger.warning(f"Skipping repeated call to {call.name}")
                contents[position] = (
                    f"{call.name} was already called {self.max_identical_tool_calls} time(s) "
                    "with these arguments; use the earlier result."
                )
            else:
                to_dispatch.append(position)

        if to_dispatch:
            executor = ThreadPoolExecutor(
                max_workers=min(self.max_tool_workers, len(to_dispatch)),
                thread_name_prefix="tool"
            )
            try:
                futures = {
                    position: executor.submit(self.registry.dispatch, calls[position], owner_id)
                    for position in to_dispatch
                }
                _, not_done = wait(futures.values(), timeout=self.tool_timeout_seconds)
                if not_done:
                    late = [calls[p].name for p, f in futures.items() if f in not_done]
                    raise InvocationTimeout(
                        f"Tool calls did not finish within {self.tool_timeout_seconds}s: {', '.join(late)}"
                    )
                for position, future in futures.items():
                    contents[position] = future.result().content
            finally:
                executor.shutdown(wait=False, cancel_futures=True)

        tool_messages = [
            Message(role="tool", content=contents[position], tool_call_id=call.id)
            for position, call in enumerate(calls)
        ]
        executed = [calls[position].name for position in to_dispatch]
        return tool_messages, executed
