"""
SDK for the token counter.

Checks offline predictions against usage reported by the live service.
"""

from .openai_client import TokenCheckingOpenAI, TokenCountCheck

__all__ = ["TokenCheckingOpenAI", "TokenCountCheck"]
