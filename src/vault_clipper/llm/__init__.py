"""LLM transform gateway: content formatting and tag generation over HTTP."""

from vault_clipper.llm.transformer import LlmTransformer

__all__ = ["LlmTransformer"]
