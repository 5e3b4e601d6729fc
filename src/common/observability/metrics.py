"""Optional low-cardinality metrics for the query service."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from opentelemetry import metrics

from common.config.env import get_env_bool

logger = logging.getLogger(__name__)

_OTLP_ENDPOINT_VARS = ("OTEL_EXPORTER_OTLP_ENDPOINT", "OTEL_EXPORTER_OTLP_METRICS_ENDPOINT")


def otlp_endpoint_configured() -> bool:
    """Return True when an OTLP collector endpoint is set."""
    return any((os.getenv(name) or "").strip() for name in _OTLP_ENDPOINT_VARS)


def telemetry_enabled(flag_var: str) -> bool:
    """Resolve a telemetry toggle.

    An explicit ``flag_var`` wins; an unparseable value disables telemetry.
    Without it, telemetry follows whether an OTLP endpoint is configured.
    """
    if os.getenv(flag_var) is None:
        return otlp_endpoint_configured()
    try:
        return get_env_bool(flag_var, False) is True
    except ValueError:
        logger.warning("Invalid %s value '%s'; telemetry disabled.", flag_var, os.getenv(flag_var))
        return False


def _attribute_values(attributes: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for key, value in (attributes or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        elif not isinstance(value, (str, int, float)):
            value = str(value)
        values[key] = value
    return values


@dataclass
class OptionalMetrics:
    """OTEL counters and histograms that are no-ops unless enabled."""

    meter_name: str
    enabled_env_var: str
    _meter: Any = None
    _instruments: Dict[Tuple[str, str], Any] = field(default_factory=dict)

    def _instrument(self, kind: str, name: str, description: str):
        key = (kind, name)
        instrument = self._instruments.get(key)
        if instrument is None:
            if self._meter is None:
                self._meter = metrics.get_meter(self.meter_name)
            factory = getattr(self._meter, f"create_{kind}")
            instrument = factory(name=name, description=description)
            self._instruments[key] = instrument
        return instrument

    def add_counter(
        self,
        name: str,
        value: int = 1,
        *,
        description: str = "",
        attributes: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Add to a monotonic counter."""
        if not telemetry_enabled(self.enabled_env_var):
            return
        try:
            self._instrument("counter", name, description).add(
                int(value), _attribute_values(attributes)
            )
        except Exception as exc:
            logger.debug("Counter %s not recorded: %s", name, exc)

    def record_histogram(
        self,
        name: str,
        value: float,
        *,
        description: str = "",
        attributes: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Record one histogram datapoint."""
        if not telemetry_enabled(self.enabled_env_var):
            return
        try:
            self._instrument("histogram", name, description).record(
                float(value), _attribute_values(attributes)
            )
        except Exception as exc:
            logger.debug("Histogram %s not recorded: %s", name, exc)


query_metrics = OptionalMetrics(
    meter_name="db-query",
    enabled_env_var="DB_QUERY_METRICS_ENABLED",
)
