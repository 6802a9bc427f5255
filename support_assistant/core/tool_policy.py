"""Heuristic tool-forcing policy.

A cheap pre-check deciding whether to append a reinforcement message that
asks the model to ground its answer with tools. Advisory only: the model
still chooses which tools, if any, to call.
"""

from support_assistant.core.schemas_assistant import ConversationTurn, TurnRole

# Lookup / informational intent markers
DEFAULT_TOOL_KEYWORDS: tuple[str, ...] = (
    "who is",
    "what is",
    "where",
    "find",
    "search",
    "show me",
    "look up",
    "lookup",
    "how to",
    "how do",
    "how can",
    "list",
    "campaign",
    "reward",
    "price",
    "near",
    "contact",
    "owner",
    "profile",
    "voting power",
    "resource credit",
    "import",
    "my posts",
    "@",
)

TOOL_REINFORCEMENT = (
    "Before answering, use the available tools to look up the facts you need. "
    "Do not rely on memory or on earlier answers in this conversation for "
    "platform facts, user data, objects or campaigns."
)


def parse_keywords(raw: str) -> tuple[str, ...]:
    """Parse a comma separated keyword override. Empty input means defaults."""
    keywords = tuple(k.strip().lower() for k in raw.split(",") if k.strip())
    return keywords or DEFAULT_TOOL_KEYWORDS


def last_assistant_turn(history: list[ConversationTurn]) -> ConversationTurn | None:
    for turn in reversed(history):
        if turn.role == TurnRole.ASSISTANT:
            return turn
    return None


def needs_tools(
    utterance: str,
    prior_turn: ConversationTurn | None,
    keywords: tuple[str, ...] = DEFAULT_TOOL_KEYWORDS,
) -> bool:
    """
    True when the utterance looks like a lookup, or when the previous
    assistant turn answered without calling any tool.

    Args:
        utterance: Current user message
        prior_turn: The most recent assistant turn, if any
        keywords: Lower-case markers of lookup intent
    """
    text = utterance.lower()
    if any(keyword in text for keyword in keywords):
        return True
    if prior_turn is not None and prior_turn.role == TurnRole.ASSISTANT:
        return not prior_turn.capabilities_used
    return False
