"""SummerAgent: an LLM tool-use loop with text-embedded tool-call parsing."""

__version__ = "0.1.0"
