"""Celery worker entry point."""
