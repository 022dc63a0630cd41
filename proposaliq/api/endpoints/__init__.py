"""API endpoints package."""

from . import health
from . import auth
from . import entities
from . import files
from . import context
from . import writer
from . import compliance
from . import data_calls
from . import timeline
from . import exports
from . import resources
from . import past_performance

__all__ = [
    "health",
    "auth",
    "entities",
    "files",
    "context",
    "writer",
    "compliance",
    "data_calls",
    "timeline",
    "exports",
    "resources",
    "past_performance",
]
