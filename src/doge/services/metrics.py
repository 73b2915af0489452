"""Process metrics and the optional Graphite reporter.

The reporter is feature-detected once: if a TCP connection to the collector
succeeds while the container is built, a Graphite bridge pushes the registry
on a fixed period for the rest of the process lifetime. Otherwise no reporter
is ever created.
"""

import logging
import socket
from collections.abc import Callable
from dataclasses import dataclass

from prometheus_client import (
    CollectorRegistry,
    Counter,
    GCCollector,
    PlatformCollector,
    ProcessCollector,
)
from prometheus_client.bridge.graphite import GraphiteBridge

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Enabled:
    """The collector answered the startup probe."""

    address: tuple[str, int]


@dataclass(frozen=True)
class Disabled:
    """The collector was unreachable at startup."""


MetricsDecision = Enabled | Disabled


def probe_collector(host: str, port: int, timeout: float = 1.0) -> MetricsDecision:
    """Try a TCP connect to the collector and report the outcome."""
    try:
        with socket.create_connection((host, port), timeout=timeout):
            pass
    except OSError as exc:
        logger.info("Graphite collector %s:%s unreachable (%s)", host, port, exc)
        return Disabled()
    logger.info("Graphite collector found at %s:%s", host, port)
    return Enabled(address=(host, port))


@dataclass
class AppMetrics:
    """Application counters registered on a metric registry."""

    registry: CollectorRegistry
    uploads: Counter
    broker_messages: Counter

    def record_upload(self) -> None:
        self.uploads.inc()

    def record_broker_messages(self, count: int) -> None:
        if count:
            self.broker_messages.inc(count)


def build_metrics() -> AppMetrics:
    """Create a registry with process collectors and the app counters."""
    registry = CollectorRegistry()
    ProcessCollector(registry=registry)
    PlatformCollector(registry=registry)
    GCCollector(registry=registry)
    uploads = Counter(
        "doge_uploads", "Dogified photos stored.", registry=registry
    )
    broker_messages = Counter(
        "doge_broker_messages",
        "Messages delivered to broker subscribers.",
        registry=registry,
    )
    return AppMetrics(
        registry=registry, uploads=uploads, broker_messages=broker_messages
    )


def start_reporter(
    decision: MetricsDecision,
    registry: CollectorRegistry,
    prefix: str,
    period_seconds: float,
    bridge_factory: Callable[..., GraphiteBridge] = GraphiteBridge,
) -> GraphiteBridge | None:
    """Start a Graphite reporter when the probe enabled metrics."""
    if not isinstance(decision, Enabled):
        return None
    reporter = bridge_factory(decision.address, registry=registry)
    reporter.start(interval=period_seconds, prefix=prefix)
    logger.info(
        "Reporting metrics to %s:%s every %ss with prefix %s",
        *decision.address,
        period_seconds,
        prefix,
    )
    return reporter
