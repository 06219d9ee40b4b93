"""specsync: agent workflow sessions and component requirement tracking."""

from .analyzer import ComponentAnalyzer
from .config import load_config
from .persistence import get_repository
from .sessions import Orchestrator, Session, StepContext
from .sessions.runner import SessionRunner
from .workflows import default_workflows

__version__ = "0.1.0"
__all__ = [
    "ComponentAnalyzer",
    "Orchestrator",
    "Session",
    "SessionRunner",
    "StepContext",
    "default_workflows",
    "get_repository",
    "load_config",
]
