"""
Core - Horloge

Horloge injectable: les tests avancent le temps sans patcher datetime.
"""

from datetime import datetime, timezone
from typing import Callable


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Horodatage UTC timezone-aware."""
    return datetime.now(timezone.utc)
