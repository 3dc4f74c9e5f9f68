"""Scheduling module for the periodic escalation pass."""

from .service import ESCALATION_JOB_ID, SchedulerService

__all__ = [
    "SchedulerService",
    "ESCALATION_JOB_ID",
]
