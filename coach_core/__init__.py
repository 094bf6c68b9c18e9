"""
Coach Core Module

Suggestion engine for learner scripts.

This module provides:
- Execution result and suggestion value objects
- Rule-table heuristics that run locally
- Remote LLM suggestions with fixed fallbacks
- An orchestrator that publishes only the latest cycle's suggestions
"""

__version__ = "0.1.0"

from .heuristics import HeuristicAnalyzer, analyze
from .orchestrator import OrchestratorState, SuggestionOrchestrator
from .remote import RemoteSuggestionClient, fetch_remote
from .schemas import ExecutionResult, Suggestion

__all__ = [
    "ExecutionResult",
    "HeuristicAnalyzer",
    "OrchestratorState",
    "RemoteSuggestionClient",
    "Suggestion",
    "SuggestionOrchestrator",
    "analyze",
    "fetch_remote",
]
