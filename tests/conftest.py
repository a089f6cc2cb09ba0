"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages.
"""

import os
import sys
from pathlib import Path

import pytest

# Insert local src directory at the beginning of sys.path
# This ensures that the local routesync package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

# Force reimport of routesync modules if already imported
for module_name in list(sys.modules.keys()):
    if module_name.startswith("routesync"):
        del sys.modules[module_name]

_CONVENTIONAL_VARS = (
    "DATABASE_URL",
    "SUPABASE_URL",
    "SUPABASE_SERVICE_KEY",
    "SUPABASE_KEY",
    "ROUTES_DIR",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's own database settings out of every test."""
    for var in _CONVENTIONAL_VARS:
        # setenv first so teardown also removes values loaded from a .env
        monkeypatch.setenv(var, "")
        monkeypatch.delenv(var)
    for var in list(os.environ):
        if var.upper().startswith("ROUTESYNC__"):
            monkeypatch.delenv(var)


@pytest.fixture
def route_dir(tmp_path: Path) -> Path:
    """Empty flat route directory."""
    routes = tmp_path / "routes"
    routes.mkdir()
    return routes
