"""Security anomaly detection, event storage and automated response."""

from src.anomaly_detection.audit import (
    AuditAction,
    AuditLogReader,
    AuditRecord,
    InMemoryAuditLog,
)
from src.anomaly_detection.breach import BreachDetector
from src.anomaly_detection.event_store import SecurityEventStore
from src.anomaly_detection.models import (
    AutoResponse,
    BreachReport,
    BreachType,
    SecurityEvent,
    SecurityEventType,
    SecuritySeverity,
)
from src.anomaly_detection.monitor import MonitorConfig, SecurityMonitor
from src.anomaly_detection.responder import AutomatedResponseExecutor

__all__ = [
    "AuditAction",
    "AuditLogReader",
    "AuditRecord",
    "AutoResponse",
    "AutomatedResponseExecutor",
    "BreachDetector",
    "BreachReport",
    "BreachType",
    "InMemoryAuditLog",
    "MonitorConfig",
    "SecurityEvent",
    "SecurityEventStore",
    "SecurityEventType",
    "SecurityMonitor",
    "SecuritySeverity",
]
