"""Periodic notification jobs."""

from cadence.jobs.engine import CLEANUP_SENT, DELIVER_DUE, OVERDUE_SCAN, JobEngine

__all__ = ["CLEANUP_SENT", "DELIVER_DUE", "OVERDUE_SCAN", "JobEngine"]
