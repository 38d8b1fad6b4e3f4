"""
Automation

Bounded-concurrency scheduling of generation jobs.
"""

from .scheduler import JobQueue, JobScheduler

__all__ = [
    'JobQueue',
    'JobScheduler',
]
