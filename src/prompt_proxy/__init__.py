"""
Prompt Proxy package.

Provides:
- FastAPI proxy that forwards browser prompts to the Anthropic Messages API
- Origin allow-list and per-IP sliding-window rate limiting
"""

__version__ = "1.0.0"
