"""Expert chat package exports."""

from .config import Settings, settings
from .domain import Orchestrator
from .service import ConversationService

__all__ = [
    "ConversationService",
    "Orchestrator",
    "Settings",
    "settings",
]
