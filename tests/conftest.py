import sys
from pathlib import Path

import pytest

# Ensure the repository root (which contains the `src` package) is importable in tests.
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.common.models import IncidentPoint  # noqa: E402


@pytest.fixture()
def downtown_incidents():
    """Two incidents sharing an address plus one on its own."""

    return [
        IncidentPoint(id="1", latitude=45.5017, longitude=-73.5673, category="Vol", timestamp="2024-03-02T10:00:00"),
        IncidentPoint(id="2", latitude=45.5017, longitude=-73.5673, category="Méfait", timestamp="2024-05-20"),
        IncidentPoint(id="3", latitude=45.51, longitude=-73.50, category="Vol", timestamp="2023-11-11T08:15:00Z"),
    ]
