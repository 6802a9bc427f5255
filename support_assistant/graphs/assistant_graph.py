"""Tool-calling assistant LangGraph: plan → act → synthesize, with fallback.

Planning asks the model (capabilities bound) whether it needs tools. Tool
calls run concurrently with per-call failure isolation, then the model is
asked again with every tool result. Any error in planning, acting or
synthesizing routes to a single tool-less fallback call, so the graph
always ends with a textual answer or raises ``ModelServiceUnavailable``.
"""

from dataclasses import dataclass, field
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage
from langgraph.graph import END, StateGraph

from support_assistant.chains.chat_tools import (
    Capability,
    ToolInvocationRecord,
    capability_map,
    execute_tool_calls,
)
from support_assistant.core.errors import ModelServiceUnavailable
from support_assistant.core.logging import get_logger
from support_assistant.core.tool_policy import TOOL_REINFORCEMENT
from support_assistant.core.usage import capabilities_used

logger = get_logger(__name__)


@dataclass
class AssistantTurnState:
    """State for the assistant graph."""

    # Input fields
    utterance: str
    system_prompt: str
    fallback_prompt: str
    history: list[BaseMessage] = field(default_factory=list)
    capabilities: list[Capability] = field(default_factory=list)
    reinforce: bool = False
    session_id: str = ""

    # Processing state
    messages: list[BaseMessage] = field(default_factory=list)
    plan: AIMessage | None = None
    records: list[ToolInvocationRecord] = field(default_factory=list)
    error: str | None = None

    # Output
    answer: str = ""
    capabilities_used: list[str] = field(default_factory=list)
    fallback_used: bool = False


def message_text(message: BaseMessage | None) -> str:
    """Plain text of a model message (string or content-block list)."""
    if message is None:
        return ""
    content = message.content
    if isinstance(content, str):
        return content.strip()
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts).strip()


class AssistantGraph:
    """Compiled assistant graph bound to one chat model."""

    def __init__(self, llm: BaseChatModel, tool_timeout: float | None = None):
        self._llm = llm
        self._tool_timeout = tool_timeout
        self._compiled = self._build_graph().compile()

    def _bound_llm(self, capabilities: list[Capability]):
        if not capabilities:
            return self._llm
        return self._llm.bind_tools([c.to_tool_definition() for c in capabilities])

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    async def plan(self, state: AssistantTurnState) -> dict[str, Any]:
        """Ask the model which capabilities, if any, it wants to call."""
        messages: list[BaseMessage] = [
            SystemMessage(content=state.system_prompt),
            *state.history,
            HumanMessage(content=state.utterance),
        ]
        if state.reinforce:
            messages.append(SystemMessage(content=TOOL_REINFORCEMENT))

        try:
            response = await self._bound_llm(state.capabilities).ainvoke(messages)
        except Exception as e:
            logger.warning(
                f"Planning failed: {e}",
                exc_info=True,
                extra={"session_id": state.session_id},
            )
            return {"messages": messages, "error": f"planning: {e}"}

        logger.info(
            f"Planned {len(response.tool_calls or [])} tool calls",
            extra={"session_id": state.session_id},
        )
        return {"messages": messages, "plan": response}

    async def act(self, state: AssistantTurnState) -> dict[str, Any]:
        """Run every requested call concurrently; tool errors become text."""
        tool_calls = state.plan.tool_calls if state.plan else []
        try:
            records = await execute_tool_calls(
                capability_map(state.capabilities), tool_calls, timeout=self._tool_timeout
            )
        except Exception as e:
            logger.warning(
                f"Tool execution failed: {e}",
                exc_info=True,
                extra={"session_id": state.session_id},
            )
            return {"error": f"acting: {e}"}

        known = {c.name for c in state.capabilities}
        failed = sum(1 for r in records if not r.ok)
        if failed:
            logger.info(
                f"{failed}/{len(records)} tool calls returned errors",
                extra={"session_id": state.session_id},
            )
        return {"records": records, "capabilities_used": capabilities_used(tool_calls, known)}

    async def synthesize(self, state: AssistantTurnState) -> dict[str, Any]:
        """Answer with the plan message and every tool result in context."""
        messages = [
            *state.messages,
            state.plan,
            *(ToolMessage(content=r.content, tool_call_id=r.tool_call_id) for r in state.records),
        ]
        try:
            response = await self._bound_llm(state.capabilities).ainvoke(messages)
            answer = message_text(response)
            if not answer:
                # Model asked for more tools instead of answering
                response = await self._llm.ainvoke(messages)
                answer = message_text(response)
        except Exception as e:
            logger.warning(
                f"Synthesis failed: {e}",
                exc_info=True,
                extra={"session_id": state.session_id},
            )
            return {"messages": messages, "error": f"synthesizing: {e}"}

        if not answer:
            return {"messages": messages, "error": "synthesizing: empty answer"}
        return {"messages": messages, "answer": answer}

    async def respond(self, state: AssistantTurnState) -> dict[str, Any]:
        """No tools requested: the plan message is the answer."""
        return {"answer": message_text(state.plan)}

    async def fallback(self, state: AssistantTurnState) -> dict[str, Any]:
        """Single tool-less call with a minimal prompt."""
        logger.warning(
            f"Using fallback answer after error: {state.error}",
            extra={"session_id": state.session_id},
        )
        messages = [
            SystemMessage(content=state.fallback_prompt),
            *state.history,
            HumanMessage(content=state.utterance),
        ]
        try:
            response = await self._llm.ainvoke(messages)
        except Exception as e:
            logger.error(
                f"Fallback model call failed: {e}",
                exc_info=True,
                extra={"session_id": state.session_id},
            )
            raise ModelServiceUnavailable(str(e)) from e

        answer = message_text(response)
        if not answer:
            raise ModelServiceUnavailable("fallback returned an empty answer")
        return {"answer": answer, "fallback_used": True}

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    @staticmethod
    def route_after_plan(state: AssistantTurnState) -> str:
        if state.error or state.plan is None:
            return "fallback"
        if state.plan.tool_calls:
            return "act"
        if not message_text(state.plan):
            return "fallback"
        return "respond"

    @staticmethod
    def route_on_error(state: AssistantTurnState) -> str:
        return "fallback" if state.error else "continue"

    def _build_graph(self) -> StateGraph:
        graph = StateGraph(AssistantTurnState)

        graph.add_node("planner", self.plan)
        graph.add_node("act", self.act)
        graph.add_node("synthesize", self.synthesize)
        graph.add_node("respond", self.respond)
        graph.add_node("fallback", self.fallback)

        graph.set_entry_point("planner")
        graph.add_conditional_edges(
            "planner",
            self.route_after_plan,
            {"act": "act", "respond": "respond", "fallback": "fallback"},
        )
        graph.add_conditional_edges(
            "act",
            self.route_on_error,
            {"continue": "synthesize", "fallback": "fallback"},
        )
        graph.add_conditional_edges(
            "synthesize",
            self.route_on_error,
            {"continue": END, "fallback": "fallback"},
        )
        graph.add_edge("respond", END)
        graph.add_edge("fallback", END)

        return graph

    async def run(self, initial_state: AssistantTurnState) -> dict[str, Any]:
        """
        Run one turn through the graph.

        Returns:
            Final state values (``answer``, ``capabilities_used``, ``records``,
            ``fallback_used`` ...)

        Raises:
            ModelServiceUnavailable: If even the fallback could not answer
        """
        return await self._compiled.ainvoke(initial_state)
