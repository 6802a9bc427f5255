"""Prompt assembly for assistant turns."""
