# FILE: backend/lumendocs/worker.py
# Entry point for the Celery worker. Owns the per-process AppContext.
#
#   celery -A lumendocs.worker.celery_app worker --loglevel=info
#
# 1. The default pool is `threads`: tasks share the main process, so the
#    worker_shutting_down signal sets the same event their polls wait on and
#    in-flight resolutions record `resolution cancelled:`.
# 2. Under prefork each child builds its own context (worker_process_init),
#    but the shutdown signal fires in the parent only: children finish their
#    polls and stop at the resolution deadline instead.

import logging
import threading
from typing import Optional

from celery.signals import worker_process_init, worker_process_shutdown, worker_shutdown, worker_shutting_down

from .celery_app import celery_app
from .core.config import settings
from .core.context import AppContext, build_context

logger = logging.getLogger(__name__)

shutdown_event = threading.Event()
_context: Optional[AppContext] = None
_context_lock = threading.Lock()


def get_worker_context() -> AppContext:
    global _context
    with _context_lock:
        if _context is None:
            _context = build_context(settings)
            _context.cancel_event = shutdown_event
        return _context


def set_worker_context(context: Optional[AppContext]) -> None:
    global _context
    with _context_lock:
        _context = context


def _close_context() -> None:
    global _context
    with _context_lock:
        if _context is not None:
            _context.close()
            _context = None


@worker_process_init.connect
def init_worker_process(**kwargs):
    logger.info("--- [Worker] Building process context. ---")
    get_worker_context()


@worker_shutting_down.connect
def signal_shutdown(**kwargs):
    logger.info("--- [Worker] Shutdown requested; cancelling in-flight resolutions. ---")
    shutdown_event.set()


@worker_process_shutdown.connect
def close_worker_process(**kwargs):
    shutdown_event.set()
    _close_context()


@worker_shutdown.connect
def close_worker(**kwargs):
    # threads and solo pools never fire worker_process_shutdown.
    _close_context()


__all__ = ["celery_app", "get_worker_context", "set_worker_context", "shutdown_event"]
