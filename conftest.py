"""
Root-level pytest conftest.

Puts the project root on sys.path so common/ and services/ import without an
install step, and keeps test runs from writing logs/ files.
"""
import os
import sys
from pathlib import Path

os.environ.setdefault("LOG_DIR", "")

_root = Path(__file__).parent
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))
