"""
Core building blocks shared by engine and page handles.

- Completion bridge: error-first callback call -> ``asyncio.Future``
- Session state machine: Open -> Closing -> Closed guard
"""

from phantom_pages.core.bridge import CompletionBridge, call_async
from phantom_pages.core.state import SessionState, SessionStateMachine

__all__ = [
    "CompletionBridge",
    "call_async",
    "SessionState",
    "SessionStateMachine",
]
