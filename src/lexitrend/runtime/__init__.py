"""Runtime services: retry policies, pending-request arena, logging."""

from .pending import PendingRequests

__all__ = ["PendingRequests"]
