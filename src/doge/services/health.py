"""Document store health indicator."""

import logging
from dataclasses import dataclass
from typing import Literal, Protocol

logger = logging.getLogger(__name__)

HealthStatus = Literal["ok", "error"]


class DatabaseNamesClient(Protocol):
    """The slice of the Mongo client used for health probes."""

    def list_database_names(self) -> list[str]:
        """Return the names of the databases on the server."""


@dataclass
class MongoHealthIndicator:
    """Reports whether the document store answers a metadata request."""

    client: DatabaseNamesClient

    def check(self) -> HealthStatus:
        """Return "ok" when the store responds, "error" on any failure."""
        try:
            self.client.list_database_names()
        except Exception:  # noqa: BLE001
            logger.warning("MongoDB health probe failed", exc_info=True)
            return "error"
        return "ok"
