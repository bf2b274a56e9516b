"""Centralized path definitions for mimecraft.

This module provides a single source of truth for all application paths.
Set ``MIMECRAFT_HOME`` to relocate everything (tests do this).
"""

import os
from pathlib import Path

# Base application directory
MIMECRAFT_DIR = Path(os.environ.get("MIMECRAFT_HOME", Path.home() / ".mimecraft"))

# Subdirectories
LOGS_DIR = MIMECRAFT_DIR / "logs"

# Specific files
CONFIG_PATH = MIMECRAFT_DIR / "config.json"
