"""
LLM Module

LLM abstraction layer with multi-provider support.

This module provides:
- Unified async BaseLLMProvider interface
- Gemini (HTTP), OpenAI-compatible and scripted fake providers
- Mentor prompt template
- Retry logic with exponential backoff
- Call/latency/error tracking
"""

__version__ = "0.1.0"
