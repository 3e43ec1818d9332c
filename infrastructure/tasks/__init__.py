"""Celery task infrastructure package.

Importing this module wires together the configured Celery app and the
lightweight dispatcher facade that higher layers depend upon.

Run a worker with ``celery -A infrastructure.tasks worker -Q high,default``.
"""
from .config.celery import celery_app
from .utils.dispatcher import TaskDispatcher
from . import tasks  # noqa: F401 to register tasks in the web process too

__all__ = ["celery_app", "TaskDispatcher"]
