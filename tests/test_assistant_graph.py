"""Tests for the plan → act → synthesize assistant graph.

Covers:
- partial tool failure isolation and usage attribution
- no-tool answers
- fallback routing on planning/synthesis errors
- ModelServiceUnavailable when the fallback also fails
"""

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage, ToolMessage

from support_assistant.chains.chat_tools import Capability
from support_assistant.chains.chat_tools.definitions import query_schema
from support_assistant.core.errors import ModelServiceUnavailable
from support_assistant.core.tool_policy import TOOL_REINFORCEMENT
from support_assistant.graphs.assistant_graph import AssistantGraph, AssistantTurnState, message_text

from tests.fakes.fake_chat_model import ScriptedChatModel, plan_with_calls, tool_call


async def _lookup(args):
    return f"found {args.get('query')}"


async def _explode(args):
    raise RuntimeError("account service down")


CAPABILITIES = [
    Capability(name="lookupTool", description="lookup", input_schema=query_schema(), handler=_lookup),
    Capability(name="brokenTool", description="broken", input_schema=query_schema(), handler=_explode),
]


def _state(**overrides) -> AssistantTurnState:
    values = dict(
        utterance="tell me about pizza",
        system_prompt="SYSTEM",
        fallback_prompt="FALLBACK",
        history=[HumanMessage(content="earlier"), AIMessage(content="earlier answer")],
        capabilities=CAPABILITIES,
        session_id="s1",
    )
    values.update(overrides)
    return AssistantTurnState(**values)


# ──────────────────────────────────────────────────────────────────────
# Acting
# ──────────────────────────────────────────────────────────────────────


class TestToolRound:
    @pytest.mark.asyncio
    async def test_partial_failure_reaches_synthesis(self):
        llm = ScriptedChatModel(
            [
                plan_with_calls(
                    tool_call("lookupTool", {"query": "pizza"}, "call_1"),
                    tool_call("brokenTool", {"query": "x"}, "call_2"),
                    tool_call("lookupTool", {"query": "pasta"}, "call_3"),
                ),
                AIMessage(content="Pizza is great."),
            ]
        )

        final = await AssistantGraph(llm).run(_state())

        assert final["answer"] == "Pizza is great."
        assert final["capabilities_used"] == ["lookupTool", "brokenTool"]
        assert not final.get("fallback_used")

        synthesis_messages = llm.calls[1]
        tool_messages = [m for m in synthesis_messages if isinstance(m, ToolMessage)]
        assert [m.tool_call_id for m in tool_messages] == ["call_1", "call_2", "call_3"]
        assert tool_messages[0].content == "found pizza"
        assert tool_messages[1].content == "Error executing brokenTool: account service down"

    @pytest.mark.asyncio
    async def test_synthesis_sees_full_transcript(self):
        plan = plan_with_calls(tool_call("lookupTool", {"query": "pizza"}))
        llm = ScriptedChatModel([plan, AIMessage(content="done")])

        await AssistantGraph(llm).run(_state())

        messages = llm.calls[1]
        assert isinstance(messages[0], SystemMessage) and messages[0].content == "SYSTEM"
        assert messages[1].content == "earlier"
        assert messages[3].content == "tell me about pizza"
        assert messages[4] is plan or messages[4].tool_calls == plan.tool_calls

    @pytest.mark.asyncio
    async def test_unknown_tool_not_attributed(self):
        llm = ScriptedChatModel(
            [plan_with_calls(tool_call("ghostTool", {}, "call_1")), AIMessage(content="sorry")]
        )

        final = await AssistantGraph(llm).run(_state())

        assert final["answer"] == "sorry"
        assert final["capabilities_used"] == []

    @pytest.mark.asyncio
    async def test_empty_synthesis_retries_without_tools(self):
        llm = ScriptedChatModel(
            [
                plan_with_calls(tool_call("lookupTool", {"query": "pizza"})),
                plan_with_calls(tool_call("lookupTool", {"query": "again"}, "call_9")),
                AIMessage(content="final"),
            ]
        )

        final = await AssistantGraph(llm).run(_state())

        assert final["answer"] == "final"
        assert len(llm.calls) == 3


# ──────────────────────────────────────────────────────────────────────
# Planning
# ──────────────────────────────────────────────────────────────────────


class TestPlanning:
    @pytest.mark.asyncio
    async def test_no_tools_answer_directly(self):
        llm = ScriptedChatModel([AIMessage(content="Hello!")])

        final = await AssistantGraph(llm).run(_state(utterance="hi"))

        assert final["answer"] == "Hello!"
        assert final["capabilities_used"] == []
        assert len(llm.calls) == 1

    @pytest.mark.asyncio
    async def test_reinforcement_appended_after_utterance(self):
        llm = ScriptedChatModel([AIMessage(content="ok")])

        await AssistantGraph(llm).run(_state(reinforce=True))

        messages = llm.calls[0]
        assert messages[-2].content == "tell me about pizza"
        assert messages[-1].content == TOOL_REINFORCEMENT

    @pytest.mark.asyncio
    async def test_capabilities_bound_for_planning(self):
        llm = ScriptedChatModel([AIMessage(content="ok")])

        await AssistantGraph(llm).run(_state())

        names = [t["function"]["name"] for t in llm.bound_tools[0]]
        assert names == ["lookupTool", "brokenTool"]


# ──────────────────────────────────────────────────────────────────────
# Fallback
# ──────────────────────────────────────────────────────────────────────


class TestFallback:
    @pytest.mark.asyncio
    async def test_planning_error_uses_fallback_prompt(self):
        llm = ScriptedChatModel([RuntimeError("rate limited"), AIMessage(content="best effort")])

        final = await AssistantGraph(llm).run(_state())

        assert final["answer"] == "best effort"
        assert final["fallback_used"] is True
        assert final["capabilities_used"] == []
        fallback_messages = llm.calls[1]
        assert fallback_messages[0].content == "FALLBACK"
        assert fallback_messages[-1].content == "tell me about pizza"

    @pytest.mark.asyncio
    async def test_synthesis_error_keeps_partial_usage(self):
        llm = ScriptedChatModel(
            [
                plan_with_calls(tool_call("lookupTool", {"query": "pizza"})),
                TimeoutError("model timed out"),
                AIMessage(content="fallback answer"),
            ]
        )

        final = await AssistantGraph(llm).run(_state())

        assert final["answer"] == "fallback answer"
        assert final["capabilities_used"] == ["lookupTool"]

    @pytest.mark.asyncio
    async def test_empty_plan_routes_to_fallback(self):
        llm = ScriptedChatModel([AIMessage(content=""), AIMessage(content="something")])

        final = await AssistantGraph(llm).run(_state())

        assert final["answer"] == "something"
        assert final["fallback_used"] is True

    @pytest.mark.asyncio
    async def test_fallback_failure_raises(self):
        llm = ScriptedChatModel([RuntimeError("down"), RuntimeError("still down")])

        with pytest.raises(ModelServiceUnavailable):
            await AssistantGraph(llm).run(_state())


class TestMessageText:
    def test_content_blocks(self):
        message = AIMessage(content=[{"type": "text", "text": "a"}, {"type": "image_url"}, "b"])
        assert message_text(message) == "ab"

    def test_none(self):
        assert message_text(None) == ""
