"""Database models for the LifeOS backend."""

from .auth import ApiToken, User
from .chat import ChatConversation, ChatMessage
from .logs import RunLog
from .metric import Metric, MetricEntry
from .workflow import Workflow, WorkflowRun

__all__ = [
    "ApiToken",
    "ChatConversation",
    "ChatMessage",
    "Metric",
    "MetricEntry",
    "RunLog",
    "User",
    "Workflow",
    "WorkflowRun",
]
