"""
Orchestrator package.

The implementation lives in mc_manager/orchestrator/core.py; this module
re-exports its public API so callers can write:

    from mc_manager.orchestrator import get_orchestrator
"""

from .core import *  # noqa: F401,F403  re-export everything from core
from .core import __all__  # noqa: F401
