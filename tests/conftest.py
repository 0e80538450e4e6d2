"""Test configuration for realty-notifications."""

from datetime import datetime, timezone

import pytest
import pytest_asyncio

from realty_notifications.cache.memory import InMemoryCacheBackend
from realty_notifications.cache.service import NotificationCache
from realty_notifications.channel import RecipientInfo
from realty_notifications.delivery import NotificationChannel, RenderedNotification
from realty_notifications.memory.fake import InMemoryProvider
from realty_notifications.models import NotificationRequest, NotificationType
from realty_notifications.orchestrator import NotificationOrchestrator
from realty_notifications.preferences import PreferenceResolver
from realty_notifications.scheduler import NotificationScheduler
from realty_notifications.stores.memory import (
    InMemoryInAppNotificationStore,
    InMemoryPreferenceStore,
    InMemoryRecipientDirectory,
)
from realty_notifications.template.defaults import DEFAULT_TEMPLATES
from realty_notifications.template.registry import TemplateRegistry

NOON = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable wall clock."""

    def __init__(self, now: datetime = NOON):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def monotonic():
    """Settable monotonic clock for the in-memory cache backend."""

    class Monotonic:
        value = 1000.0

        def __call__(self) -> float:
            return self.value

    return Monotonic()


@pytest.fixture
def cache_backend(monotonic):
    return InMemoryCacheBackend(clock=monotonic)


@pytest.fixture
def cache(cache_backend):
    return NotificationCache(cache_backend, prefix="test:")


@pytest.fixture
def registry():
    return TemplateRegistry(defaults=DEFAULT_TEMPLATES)


@pytest.fixture
def providers():
    return {
        channel: InMemoryProvider(channel)
        for channel in (
            NotificationChannel.EMAIL,
            NotificationChannel.SMS,
            NotificationChannel.PUSH,
            NotificationChannel.WEBHOOK,
        )
    }


@pytest.fixture
def preference_store():
    return InMemoryPreferenceStore()


@pytest.fixture
def recipients():
    return InMemoryRecipientDirectory(
        [
            RecipientInfo(
                user_id="u1",
                email="agent@example.com",
                phone="+14155552671",
                first_name="Alice",
                last_name="Agent",
            )
        ]
    )


@pytest.fixture
def in_app_store():
    return InMemoryInAppNotificationStore()


@pytest_asyncio.fixture
async def scheduler(cache, clock):
    scheduler = NotificationScheduler(cache, clock=clock)
    yield scheduler
    await scheduler.shutdown()


@pytest.fixture
def orchestrator(
    providers, registry, preference_store, recipients, in_app_store, cache, scheduler, clock
):
    orchestrator = NotificationOrchestrator(
        providers=providers.values(),
        registry=registry,
        resolver=PreferenceResolver(clock),
        preferences=preference_store,
        recipients=recipients,
        in_app_store=in_app_store,
        cache=cache,
        scheduler=scheduler,
        clock=clock,
        context_defaults={"appName": "RealEstate Platform"},
    )
    scheduler.set_dispatcher(orchestrator.send_notification)
    return orchestrator


@pytest.fixture
def inquiry_request():
    """Inquiry for agent u1 over email and the in-app inbox."""
    return NotificationRequest(
        user_id="u1",
        type=NotificationType.PROPERTY_INQUIRY,
        title="New Inquiry",
        message="Someone asked about your listing",
        channels=(NotificationChannel.EMAIL, NotificationChannel.IN_APP),
    )


@pytest.fixture
def notification_content():
    """Sample rendered notification."""
    return RenderedNotification(
        body_text="Test message body",
        subject="Test Subject",
    )
