"""Tool-calling support assistant with multi-source knowledge retrieval."""
