"""
Celery tasks for Aghosh
"""
from aghosh.tasks.email_tasks import init_tasks
from aghosh.tasks.receipt_tasks import init_receipt_tasks

__all__ = ['init_tasks', 'init_receipt_tasks']
