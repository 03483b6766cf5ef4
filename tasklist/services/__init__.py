"""
Service layer for business logic.
Services contain pure business logic without storage or presentation dependencies.
"""

from tasklist.services.task_service import TaskService, FILTER_STRATEGIES, SORT_STRATEGIES

__all__ = ["TaskService", "FILTER_STRATEGIES", "SORT_STRATEGIES"]
