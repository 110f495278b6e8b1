"""Observability helpers.

Request IDs + structlog contextvars for JSON logs, plus an in-memory metrics
snapshot served at ``/api/metrics``.
"""
