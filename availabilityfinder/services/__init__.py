"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .fanout import FanOutResult, TaskFailure, gather_best_effort
from .unified_availability import AvailabilityService

__all__ = ["AvailabilityService", "FanOutResult", "TaskFailure", "gather_best_effort"]
