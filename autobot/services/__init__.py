"""Model-driven services and their shared base class."""

from autobot.services.base import (
    BaseService,
    ProgressCallback,
    ProgressEventType,
    StandaloneContext,
    TaskProgressEvent,
)
from autobot.services.code_task import CodeTaskService
from autobot.services.models import ClaudeModel, RunRecord, ServiceConfig, ServiceStatus
from autobot.services.report import ReportService
from autobot.services.research import ResearchService
from autobot.services.self_improve import SelfImproveService
from autobot.services.topic_tracker import TopicTrackerService

ALL_SERVICES: tuple[type[BaseService], ...] = (
    ReportService,
    ResearchService,
    CodeTaskService,
    TopicTrackerService,
    SelfImproveService,
)

__all__ = [
    "ALL_SERVICES",
    "BaseService",
    "ClaudeModel",
    "CodeTaskService",
    "ProgressCallback",
    "ProgressEventType",
    "ReportService",
    "ResearchService",
    "RunRecord",
    "SelfImproveService",
    "ServiceConfig",
    "ServiceStatus",
    "StandaloneContext",
    "TaskProgressEvent",
    "TopicTrackerService",
]
