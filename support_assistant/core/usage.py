"""Capability usage attribution for a turn."""


def capabilities_used(tool_calls: list[dict], known: set[str]) -> list[str]:
    """
    Names of invoked capabilities, first-seen order, each once.

    Calls naming an unknown capability are not attributed.
    """
    names: list[str] = []
    for call in tool_calls:
        name = call.get("name")
        if name and name in known and name not in names:
            names.append(name)
    return names
