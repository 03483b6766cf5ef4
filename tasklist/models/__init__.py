"""
Domain models.
"""
from tasklist.models.task import Task, MAX_TITLE_LENGTH

__all__ = ["Task", "MAX_TITLE_LENGTH"]
