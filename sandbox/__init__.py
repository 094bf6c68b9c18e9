"""
Sandbox Module

In-process execution environment for learner scripts.

This module provides:
- Scoped capture of print calls into ordered output/error lines
- An explicit allow-list of builtins, modules and timer primitives
- An import guard admitting only allowlisted pure modules
- Strict mode: warnings escalate to errors, dunder/frame access is rejected

WARNING: This sandbox is NOT an OS-level isolation boundary and enforces no
CPU or memory limits. It is meant for short teaching scripts.
"""

__version__ = "0.1.0"
