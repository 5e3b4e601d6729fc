import sys
from pathlib import Path

import pytest

# Keep 'src' on sys.path before collection so 'common', 'dal' and
# 'query_service' import without an editable install.

if sys.version_info < (3, 10):
    print(
        f"ERROR: This project requires Python 3.10+ (found {sys.version.split()[0]}).",
        file=sys.stderr,
    )
    sys.exit(1)


ROOT_DIR = Path(__file__).parent.absolute()
src_dir = ROOT_DIR / "src"

if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))


@pytest.fixture(autouse=True)
def _quiet_telemetry(monkeypatch):
    """Keep tracing and metrics off unless a test opts in."""
    monkeypatch.delenv("OTEL_EXPORTER_OTLP_ENDPOINT", raising=False)
    monkeypatch.delenv("OTEL_EXPORTER_OTLP_METRICS_ENDPOINT", raising=False)
    monkeypatch.setenv("DB_QUERY_TRACE", "false")
    monkeypatch.setenv("DB_QUERY_METRICS_ENABLED", "false")
