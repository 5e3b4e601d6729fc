"""Shared observability helpers."""

from common.observability.metrics import query_metrics

__all__ = ["query_metrics"]
