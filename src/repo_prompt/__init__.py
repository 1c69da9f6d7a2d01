"""Serialize source trees into a single delimited, JSON or XML document for LLM prompts."""

__version__ = "0.1.0"
