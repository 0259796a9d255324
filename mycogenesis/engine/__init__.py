from .coordinator import ContentCoordinator
from .notifications import Notification, NotificationLevel, Notifier
from .orchestrator import ContentOrchestrator, PageOperation, fallback_for_operation
from .resilience import ErrorResilienceService
from .result import LoadPerformance, OperationResult, OperationStatus, PageContentResult
from .retry import DEFAULT_POLICIES, RetryPolicy
from .service_coordinator import ServiceCoordinator, get_service_coordinator, reset_service_coordinator

__all__ = [
    "ContentCoordinator",
    "ContentOrchestrator",
    "DEFAULT_POLICIES",
    "ErrorResilienceService",
    "LoadPerformance",
    "Notification",
    "NotificationLevel",
    "Notifier",
    "OperationResult",
    "OperationStatus",
    "PageContentResult",
    "PageOperation",
    "RetryPolicy",
    "ServiceCoordinator",
    "fallback_for_operation",
    "get_service_coordinator",
    "reset_service_coordinator",
]
