"""Parallel execution of restore work items."""

from .worker_thread import worker_thread_main

__all__ = ["worker_thread_main"]
