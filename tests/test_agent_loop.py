"""Tests for the agent loop."""

import threading
from typing import Optional
from unittest.mock import Mock

import pytest
from pydantic import BaseModel

from fakes import ScriptedLLMClient, LoopingLLMClient, text_response, tool_response
from agent.loop import AgentLoop, MaxIterationsExceeded, InvocationTimeout
from agent.tools import Tool, ToolRegistry, NoArguments
from llm.base_client import ModelInvocationError
from memory.conversation_store import ConversationMemory
from memory.models import ConversationTurn


class EchoArgs(BaseModel):
    text: str


class RecordingTool(Tool):
    """Tool that records its calls and echoes its input."""
    args_model = EchoArgs
    requires_owner = False

    def __init__(self, name: str, before=None, after=None):
        self.name = name
        self.description = f"{name} test tool"
        self.before = before
        self.after = after
        self.calls = []

    def execute(self, args: EchoArgs, owner_id: Optional[int]) -> str:
        if self.before:
            self.before()
        self.calls.append((args.text, owner_id))
        if self.after:
            self.after()
        return f"{self.name}:{args.text}"


class OwnerTool(Tool):
    name = "whoami"
    description = "Reports the caller"
    args_model = NoArguments

    def execute(self, args, owner_id):
        return f"owner={owner_id}"


class TestAgentLoop:
    """Test the model/tool state machine."""

    @pytest.fixture(autouse=True)
    def setup_loop(self, tmp_path):
        """Set up memory in a temporary directory."""
        self.memory = ConversationMemory(path=str(tmp_path / "conversations.json"))

    def make_loop(self, llm, tools=(), **kwargs):
        return AgentLoop(llm_client=llm, registry=ToolRegistry(tools), memory=self.memory, **kwargs)

    def test_plain_answer_returned_verbatim(self):
        """Test that a response without tool calls ends the loop."""
        llm = ScriptedLLMClient([text_response("Right then, here you are.")])
        loop = self.make_loop(llm)

        answer = loop.handle_message("chat-1", "Hello")

        assert answer == "Right then, here you are."
        history = self.memory.get_history("chat-1")
        assert [(t.role, t.content) for t in history] == [
            ("user", "Hello"),
            ("assistant", "Right then, here you are."),
        ]

    def test_input_sequence_includes_history(self):
        """Test system prompt, prior turns and new message ordering."""
        self.memory.append("chat-1", ConversationTurn(role="user", content="earlier question"))
        self.memory.append("chat-1", ConversationTurn(role="assistant", content="earlier answer"))
        llm = ScriptedLLMClient([text_response("ok")])
        loop = self.make_loop(llm, system_prompt="SYSTEM")

        loop.handle_message("chat-1", "new question")

        sent = llm.calls[0]
        assert [(m.role, m.content) for m in sent] == [
            ("system", "SYSTEM"),
            ("user", "earlier question"),
            ("assistant", "earlier answer"),
            ("user", "new question"),
        ]

    def test_tool_definitions_bound_to_every_call(self):
        tool = RecordingTool("echo")
        llm = ScriptedLLMClient([
            tool_response(("c1", "echo", {"text": "x"})),
            text_response("done"),
        ])
        loop = self.make_loop(llm, [tool])

        loop.handle_message("chat-1", "go")

        assert len(llm.tools_seen) == 2
        for tools in llm.tools_seen:
            assert [t["function"]["name"] for t in tools] == ["echo"]

    def test_tool_results_keep_request_order(self):
        """Test out-of-order completion still yields request-ordered tool messages."""
        fast_done = threading.Event()
        completion_order = []

        slow = RecordingTool(
            "slow",
            before=lambda: fast_done.wait(5),
            after=lambda: completion_order.append("slow"),
        )
        fast = RecordingTool(
            "fast",
            after=lambda: (completion_order.append("fast"), fast_done.set()),
        )
        llm = ScriptedLLMClient([
            tool_response(("call_slow", "slow", {"text": "one"}), ("call_fast", "fast", {"text": "two"})),
            text_response("all done"),
        ])
        loop = self.make_loop(llm, [slow, fast], max_tool_workers=2)

        answer = loop.handle_message("chat-1", "do both")

        assert answer == "all done"
        assert slow.calls == [("one", None)]
        assert fast.calls == [("two", None)]
        assert completion_order == ["fast", "slow"]

        second_input = llm.calls[1]
        assistant_msg, first_result, second_result = second_input[-3:]
        assert assistant_msg.role == "assistant"
        assert [tc.id for tc in assistant_msg.tool_calls] == ["call_slow", "call_fast"]
        assert (first_result.role, first_result.tool_call_id, first_result.content) == (
            "tool", "call_slow", "slow:one"
        )
        assert (second_result.role, second_result.tool_call_id, second_result.content) == (
            "tool", "call_fast", "fast:two"
        )

    def test_tool_messages_not_persisted(self):
        """Test that only the user and assistant turns reach memory."""
        llm = ScriptedLLMClient([
            tool_response(("c1", "echo", {"text": "x"})),
            tool_response(("c2", "echo", {"text": "y"})),
            text_response("final"),
        ])
        loop = self.make_loop(llm, [RecordingTool("echo")])

        result = loop.run("chat-1", "question")

        assert result.final_answer == "final"
        assert result.iterations_used == 3
        assert result.tools_called == ["echo", "echo"]
        assert [t.role for t in self.memory.get_history("chat-1")] == ["user", "assistant"]

    def test_unknown_tool_reported_in_band(self):
        llm = ScriptedLLMClient([
            tool_response(("c1", "does_not_exist", {})),
            text_response("sorry"),
        ])
        loop = self.make_loop(llm)

        assert loop.handle_message("chat-1", "hi") == "sorry"
        tool_msg = llm.calls[1][-1]
        assert tool_msg.role == "tool"
        assert "Unknown tool" in tool_msg.content

    def test_invalid_arguments_reported_in_band(self):
        tool = RecordingTool("echo")
        llm = ScriptedLLMClient([
            tool_response(("c1", "echo", {"wrong": 1})),
            text_response("let me fix that"),
        ])
        loop = self.make_loop(llm, [tool])

        loop.handle_message("chat-1", "hi")

        assert tool.calls == []
        assert "invalid arguments for echo" in llm.calls[1][-1].content

    def test_owner_defaults_to_numeric_key(self):
        llm = ScriptedLLMClient([
            tool_response(("c1", "whoami", {})),
            text_response("done"),
        ])
        loop = self.make_loop(llm, [OwnerTool()])

        loop.handle_message(12345, "who am I")

        assert llm.calls[1][-1].content == "owner=12345"

    def test_explicit_owner_overrides_key(self):
        llm = ScriptedLLMClient([
            tool_response(("c1", "whoami", {})),
            text_response("done"),
        ])
        loop = self.make_loop(llm, [OwnerTool()])

        loop.handle_message("group-chat", "who am I", owner_id=7)

        assert llm.calls[1][-1].content == "owner=7"

    def test_missing_owner_reported_in_band(self):
        llm = ScriptedLLMClient([
            tool_response(("c1", "whoami", {})),
            text_response("done"),
        ])
        loop = self.make_loop(llm, [OwnerTool()])

        loop.handle_message("group-chat", "who am I")

        assert llm.calls[1][-1].content == "Error: User ID not available."

    def test_identical_calls_are_capped(self):
        """Test that repeats beyond the cap are not executed."""
        tool = RecordingTool("echo")
        llm = ScriptedLLMClient([
            tool_response(("c1", "echo", {"text": "same"})),
            tool_response(("c2", "echo", {"text": "same"})),
            tool_response(("c3", "echo", {"text": "different"})),
            text_response("done"),
        ])
        loop = self.make_loop(llm, [tool], max_identical_tool_calls=1)

        loop.handle_message("chat-1", "repeat")

        assert [text for text, _ in tool.calls] == ["same", "different"]
        assert "already called" in llm.calls[2][-1].content

    def test_max_iterations_exceeded(self):
        """Test the defensive cap on a model that never stops calling tools."""
        llm = LoopingLLMClient("echo", {"text": "again"})
        loop = self.make_loop(llm, [RecordingTool("echo")], max_iterations=4, max_identical_tool_calls=100)

        with pytest.raises(MaxIterationsExceeded):
            loop.handle_message("chat-1", "loop forever")

        assert len(llm.calls) == 4
        assert self.memory.get_history("chat-1") == []

    def test_model_failure_propagates_without_memory_write(self):
        llm = ScriptedLLMClient([ModelInvocationError("endpoint down")])
        loop = self.make_loop(llm)

        with pytest.raises(ModelInvocationError):
            loop.handle_message("chat-1", "hello")

        assert self.memory.get_history("chat-1") == []

    def test_tool_deadline_fails_invocation(self):
        release = threading.Event()
        slow = RecordingTool("slow", before=lambda: release.wait(2))
        llm = ScriptedLLMClient([
            tool_response(("c1", "slow", {"text": "x"})),
            text_response("never reached"),
        ])
        loop = self.make_loop(llm, [slow], tool_timeout_seconds=0.05)

        try:
            with pytest.raises(InvocationTimeout):
                loop.handle_message("chat-1", "hurry")
        finally:
            release.set()

        assert self.memory.get_history("chat-1") == []

    def test_invalid_iteration_cap(self):
        with pytest.raises(ValueError):
            self.make_loop(ScriptedLLMClient(), max_iterations=0)

    def test_unrecognised_turn_is_model_error(self):
        """Test that a response collapsing to no known turn fails the invocation."""
        llm = Mock()
        llm.chat.return_value.to_turn.return_value = "not a turn"
        loop = self.make_loop(llm)

        with pytest.raises(ModelInvocationError):
            loop.handle_message("chat-1", "hello")

        assert self.memory.get_history("chat-1") == []
