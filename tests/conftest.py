"""Pytest configuration and shared fixtures."""

import os


# Keep the suite hermetic: settings are read at import time, so these must be
# set before any src module is imported.
os.environ["REDIS_URL"] = ""
os.environ["LOGFIRE_TOKEN"] = ""
os.environ.setdefault("ENVIRONMENT", "test")
