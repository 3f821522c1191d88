"""Alert rules, consolidation and system-level alerts."""

from yantrasense.alerts.consolidator import AlertConsolidator, ConsolidationResult
from yantrasense.alerts.rules import AlertCandidate, AlertPolicy, evaluate_alert_rules
from yantrasense.alerts.system import SystemAlert, SystemAlertKind, SystemAlertLog

__all__ = [
    "AlertCandidate",
    "AlertConsolidator",
    "AlertPolicy",
    "ConsolidationResult",
    "SystemAlert",
    "SystemAlertKind",
    "SystemAlertLog",
    "evaluate_alert_rules",
]
