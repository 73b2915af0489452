"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from pymongo import MongoClient

from doge.adapters.mongo_doge_repository import MongoDogePhotoRepository
from doge.adapters.mongo_photo_store import MongoPhotoStore
from doge.adapters.mongo_user_repository import MongoUserRepository
from doge.config import Settings, validate_pool_sizes
from doge.messaging.broker import SimpleBroker
from doge.messaging.dispatch import DispatchPool, TaskScheduler
from doge.messaging.transports import PollingSessionRegistry
from doge.services.doges import DogeService
from doge.services.health import MongoHealthIndicator
from doge.services.manipulator import DogePhotoManipulator
from doge.services.metrics import (
    AppMetrics,
    MetricsDecision,
    build_metrics,
    probe_collector,
)
from doge.services.users import UserRepository


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    user_repository: UserRepository
    health_indicator: MongoHealthIndicator
    doge_service: DogeService
    dispatch_pool: DispatchPool
    scheduler: TaskScheduler
    broker: SimpleBroker
    polling_sessions: PollingSessionRegistry
    metrics: AppMetrics
    metrics_decision: MetricsDecision
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    core_size, max_size = validate_pool_sizes(resolved_settings)
    mongo_client: MongoClient = MongoClient(resolved_settings.mongodb_uri)
    database = mongo_client.get_default_database(resolved_settings.mongodb_database)
    photo_store = MongoPhotoStore(mongo_client[resolved_settings.photo_database])

    metrics = build_metrics()
    metrics_decision = probe_collector(
        resolved_settings.graphite_host,
        resolved_settings.graphite_port,
        timeout=resolved_settings.graphite_probe_timeout_seconds,
    )
    dispatch_pool = DispatchPool(core_size=core_size, max_size=max_size)
    broker = SimpleBroker(pool=dispatch_pool, metrics=metrics)
    doge_service = DogeService(
        repository=MongoDogePhotoRepository(database),
        photo_store=photo_store,
        manipulator=DogePhotoManipulator(),
        broker=broker,
        metrics=metrics,
        folder_name=resolved_settings.photo_folder,
    )

    async def close_resources() -> None:
        mongo_client.close()

    return AppContainer(
        settings=resolved_settings,
        user_repository=MongoUserRepository(database),
        health_indicator=MongoHealthIndicator(mongo_client),
        doge_service=doge_service,
        dispatch_pool=dispatch_pool,
        scheduler=TaskScheduler(dispatch_pool),
        broker=broker,
        polling_sessions=PollingSessionRegistry(
            ttl_seconds=resolved_settings.polling_session_ttl_seconds
        ),
        metrics=metrics,
        metrics_decision=metrics_decision,
        close_resources=close_resources,
    )
