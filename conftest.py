"""
Root conftest: puts src/ on the path so tests run without an install.
Shared fixtures live in tests/conftest.py.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent / "src"))
