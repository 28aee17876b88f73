"""
Pytest Configuration
Fixtures partagées pour tous les tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from src.access import AccessTokenIssuer
from src.core import EngineConfig
from src.logging import LogConfig, LogLevel, StructuredLogger
from src.rotation import RotationEngine
from src.session import SessionFacade, VerificationFlows
from src.store import InMemoryCredentialStore


TEST_ACCESS_SECRET = "test-access-secret-with-at-least-32-bytes!!"


class FakeClock:
    """Horloge contrôlée: les tests avancent le temps explicitement."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    """Horloge démarrant à une date fixe."""
    return FakeClock(datetime(2025, 1, 15, 9, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def engine_config() -> EngineConfig:
    """Configuration HS256 par défaut."""
    return EngineConfig(access_secret=TEST_ACCESS_SECRET)


@pytest.fixture
def logger() -> StructuredLogger:
    """Logger capturant tout à partir de DEBUG."""
    return StructuredLogger("test", config=LogConfig(min_level=LogLevel.DEBUG))


@pytest.fixture
def store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def engine(store, engine_config, clock, logger) -> RotationEngine:
    return RotationEngine(store, engine_config, clock=clock, logger=logger)


@pytest.fixture
def issuer(engine_config, clock, logger) -> AccessTokenIssuer:
    return AccessTokenIssuer(engine_config, clock=clock, logger=logger)


@pytest.fixture
def facade(engine, issuer, logger) -> SessionFacade:
    return SessionFacade(engine, issuer, logger=logger)


@pytest.fixture
def flows(engine, logger) -> VerificationFlows:
    return VerificationFlows(engine, logger=logger)
