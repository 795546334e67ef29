"""
Pytest configuration.
Puts the project root on sys.path and pins the settings the suite relies on
before anything imports ``app.config``.
"""

import os
import sys
from pathlib import Path

# Add project root to sys.path so we can import api, services, stores, etc.
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

# The backend is never reached: respx mocks every call under this base URL
os.environ.setdefault("API_BASE_URL", "http://backend.test/api")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("COOKIE_SECURE", "false")
