"""
FastAPI dependencies for process-wide collaborators.

Routers depend on these instead of the module singletons so tests can
swap them with `app.dependency_overrides`.
"""

from pos_api.services.domain.offline_queue import OfflineQueue, get_offline_queue
from pos_api.services.domain.table_session import TerminalRegistry, get_terminal_registry


def terminal_registry() -> TerminalRegistry:
    return get_terminal_registry()


def offline_queue() -> OfflineQueue:
    return get_offline_queue()
