"""Shared fixtures."""

import pytest

from onemind.audit import AuditLogger
from onemind.config import AppSettings, GeminiSettings, RouterSettings
from onemind.routing import ContentRouter
from onemind.services.storage import InMemoryAuditStorage, InMemoryRecordStore

from fakes import TODAY, RecordingSleep


@pytest.fixture
def router_settings() -> RouterSettings:
    return RouterSettings()


@pytest.fixture
def gemini_settings() -> GeminiSettings:
    return GeminiSettings(api_key="test-key", media_max_retries=2)


@pytest.fixture
def app_settings() -> AppSettings:
    return AppSettings()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)


@pytest.fixture
def record_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def make_router(router_settings, sleep, audit_logger):
    """Build a router around a given fake adapter."""

    def _make(inference, parser=None, settings=None) -> ContentRouter:
        return ContentRouter(
            inference,
            parser=parser,
            settings=settings or router_settings,
            audit_logger=audit_logger,
            sleep=sleep,
            today=TODAY,
        )

    return _make
