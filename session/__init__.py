"""
Session Module

Configuration and command-line entry points.

This module provides:
- YAML-based configuration loading and saving
- .env loading for provider credentials
- CLI for running a script and showing suggestions
"""

__version__ = "0.1.0"
