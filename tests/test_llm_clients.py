"""Tests for LLM clients and response conversion."""

from unittest.mock import Mock

import pytest

from llm.base_client import (
    Message,
    ToolCall,
    LLMResponse,
    FinalAnswer,
    ToolCallsRequested,
    ModelInvocationError,
)
from llm.openai_client import OpenAIClient
from llm.anthropic_client import AnthropicClient
from llm.factory import create_llm_client, LLMProvider
from config.settings import Settings
from fakes import LetterEmbeddings
from orchestrator import AssistantOrchestrator, APOLOGY


def openai_tool_call(call_id, name, arguments):
    tc = Mock()
    tc.id = call_id
    tc.function.name = name
    tc.function.arguments = arguments
    return tc


def openai_response(content="", tool_calls=None, finish_reason="stop"):
    choice = Mock()
    choice.message.content = content
    choice.message.tool_calls = tool_calls
    choice.finish_reason = finish_reason

    response = Mock()
    response.choices = [choice]
    response.usage.prompt_tokens = 10
    response.usage.completion_tokens = 5
    response.usage.total_tokens = 15
    return response


class TestModelTurn:
    """Test collapsing responses into turn variants."""

    def test_plain_text_is_final_answer(self):
        turn = LLMResponse(content="hello").to_turn()
        assert isinstance(turn, FinalAnswer)
        assert turn.text == "hello"

    def test_tool_calls_requested(self):
        calls = [ToolCall(id="a", name="x", arguments={}), ToolCall(id="b", name="y", arguments={"k": 1})]
        turn = LLMResponse(content="checking", tool_calls=calls).to_turn()

        assert isinstance(turn, ToolCallsRequested)
        assert [c.id for c in turn.calls] == ["a", "b"]
        assert turn.text == "checking"

    def test_empty_tool_call_list_is_final(self):
        assert isinstance(LLMResponse(content="done", tool_calls=[]).to_turn(), FinalAnswer)


class TestOpenAIClient:
    """Test OpenAI client request and response handling."""

    def setup_method(self):
        """Set up a client with a mocked SDK."""
        self.client = OpenAIClient(api_key="test-key")
        self.client.client = Mock()

    def test_text_response(self):
        self.client.client.chat.completions.create.return_value = openai_response("Hi!")

        response = self.client.chat([Message(role="user", content="hello")])

        assert response.content == "Hi!"
        assert response.tool_calls is None
        assert response.usage["total_tokens"] == 15

    def test_tool_call_parsing(self):
        self.client.client.chat.completions.create.return_value = openai_response(
            tool_calls=[openai_tool_call("call_1", "get_weather", '{"location": "Paris"}')],
            finish_reason="tool_calls",
        )

        response = self.client.chat(
            [Message(role="user", content="weather?")],
            tools=[{"type": "function", "function": {"name": "get_weather"}}],
        )

        assert response.tool_calls == [ToolCall(id="call_1", name="get_weather", arguments={"location": "Paris"})]
        kwargs = self.client.client.chat.completions.create.call_args.kwargs
        assert kwargs["tool_choice"] == "auto"

    def test_tools_omitted_when_none(self):
        self.client.client.chat.completions.create.return_value = openai_response("ok")

        self.client.chat([Message(role="user", content="hello")])

        kwargs = self.client.client.chat.completions.create.call_args.kwargs
        assert "tools" not in kwargs

    def test_tool_traffic_serialized(self):
        """Test that assistant tool calls and tool results keep their ids."""
        self.client.client.chat.completions.create.return_value = openai_response("ok")
        messages = [
            Message(role="user", content="weather?"),
            Message(role="assistant", content="", tool_calls=[
                ToolCall(id="call_1", name="get_weather", arguments={"location": "Paris"})
            ]),
            Message(role="tool", content="Sunny", tool_call_id="call_1"),
        ]

        self.client.chat(messages)

        sent = self.client.client.chat.completions.create.call_args.kwargs["messages"]
        assert sent[1]["tool_calls"][0]["function"]["arguments"] == '{"location": "Paris"}'
        assert sent[2] == {"role": "tool", "content": "Sunny", "tool_call_id": "call_1"}

    def test_malformed_arguments(self):
        self.client.client.chat.completions.create.return_value = openai_response(
            tool_calls=[openai_tool_call("call_1", "get_weather", "{not json")]
        )

        with pytest.raises(ModelInvocationError):
            self.client.chat([Message(role="user", content="weather?")])

    def test_non_object_arguments(self):
        self.client.client.chat.completions.create.return_value = openai_response(
            tool_calls=[openai_tool_call("call_1", "get_weather", "[1, 2]")]
        )

        with pytest.raises(ModelInvocationError):
            self.client.chat([Message(role="user", content="weather?")])

    def test_null_call_id(self):
        """Test that a compatible server omitting the call id is a model error."""
        self.client.client.chat.completions.create.return_value = openai_response(
            tool_calls=[openai_tool_call(None, "get_weather", '{"location": "Paris"}')]
        )

        with pytest.raises(ModelInvocationError):
            self.client.chat([Message(role="user", content="weather?")])

    def test_sdk_error_wrapped(self):
        self.client.client.chat.completions.create.side_effect = ConnectionError("refused")

        with pytest.raises(ModelInvocationError):
            self.client.chat([Message(role="user", content="hello")])

    def test_no_choices(self):
        response = openai_response("x")
        response.choices = []
        self.client.client.chat.completions.create.return_value = response

        with pytest.raises(ModelInvocationError):
            self.client.chat([Message(role="user", content="hello")])

    def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        client = OpenAIClient()

        with pytest.raises(ModelInvocationError):
            client.chat([Message(role="user", content="hello")])


class TestAnthropicClient:
    """Test Anthropic message conversion."""

    def test_system_split_out(self):
        system, messages = AnthropicClient._convert_messages([
            Message(role="system", content="Be brief."),
            Message(role="user", content="hello"),
        ])

        assert system == "Be brief."
        assert messages == [{"role": "user", "content": "hello"}]

    def test_tool_results_grouped(self):
        """Test that results of one assistant turn share a user message."""
        _, messages = AnthropicClient._convert_messages([
            Message(role="user", content="both please"),
            Message(role="assistant", content="", tool_calls=[
                ToolCall(id="a", name="one", arguments={}),
                ToolCall(id="b", name="two", arguments={"x": 1}),
            ]),
            Message(role="tool", content="first", tool_call_id="a"),
            Message(role="tool", content="second", tool_call_id="b"),
        ])

        assert len(messages) == 3
        assert [block["type"] for block in messages[1]["content"]] == ["tool_use", "tool_use"]
        assert messages[2]["role"] == "user"
        assert [block["tool_use_id"] for block in messages[2]["content"]] == ["a", "b"]

    def test_response_parsing(self):
        client = AnthropicClient(api_key="test-key")
        client.client = Mock()

        text_block = Mock(type="text", text="Let me check.")
        tool_block = Mock(type="tool_use", id="tu_1", input={"location": "Oslo"})
        tool_block.name = "get_weather"
        response = Mock(content=[text_block, tool_block], stop_reason="tool_use")
        response.usage.input_tokens = 20
        response.usage.output_tokens = 7
        client.client.messages.create.return_value = response

        result = client.chat(
            [Message(role="system", content="sys"), Message(role="user", content="weather in Oslo?")],
            tools=[{"type": "function", "function": {"name": "get_weather", "parameters": {"type": "object"}}}],
        )

        assert result.content == "Let me check."
        assert result.tool_calls == [ToolCall(id="tu_1", name="get_weather", arguments={"location": "Oslo"})]
        assert result.usage["total_tokens"] == 27
        kwargs = client.client.messages.create.call_args.kwargs
        assert kwargs["system"] == "sys"
        assert kwargs["tools"][0]["input_schema"] == {"type": "object"}


class TestFactory:
    """Test provider selection."""

    def test_ollama_uses_openai_compatible_client(self):
        client = create_llm_client(LLMProvider.OLLAMA)

        assert isinstance(client, OpenAIClient)
        assert client.get_provider_name() == "ollama"
        assert client.get_model_name() == "llama3.1"
        assert client.base_url == "http://localhost:11434/v1"

    def test_anthropic(self):
        client = create_llm_client(LLMProvider.ANTHROPIC, api_key="k", model="claude-test")
        assert isinstance(client, AnthropicClient)
        assert client.get_model_name() == "claude-test"

    def test_provider_from_settings_string(self):
        assert LLMProvider("openai") == LLMProvider.OPENAI


class TestMalformedToolCallReply:
    """Test that malformed tool calls surface as an apology, not a crash."""

    def test_null_call_id_becomes_apology(self, tmp_path):
        client = OpenAIClient(api_key="test-key")
        client.client = Mock()
        client.client.chat.completions.create.return_value = openai_response(
            tool_calls=[openai_tool_call(None, "list_my_files", "{}")]
        )
        assistant = AssistantOrchestrator(
            settings=Settings(
                conversations_path=str(tmp_path / "conversations.json"),
                vectors_path=str(tmp_path / "vectors.json"),
                calendar_tokens_path=str(tmp_path / "calendar_tokens.json"),
            ),
            llm_client=client,
            embeddings=LetterEmbeddings(),
        )

        assert assistant.respond(1, "what files do I have?") == APOLOGY
        assert assistant.memory.get_history(1) == []
