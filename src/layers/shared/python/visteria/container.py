"""Wiring of settings, storage, repositories and services."""

from visteria.config import Settings
from visteria.repositories.visitor import VisitorRepository
from visteria.services.report_service import ReportService
from visteria.services.tracking_service import TrackingService
from visteria.storage import DynamoStore


class Container:
    """Everything a handler needs, built explicitly once per process.

    Lambda handlers share the one returned by ``get_container``; tests and
    the local server build their own, optionally around a pre-made store.
    """

    def __init__(self, settings: Settings, store: DynamoStore | None = None):
        self.settings = settings
        self.store = store or DynamoStore.from_settings(settings)
        self.visitors = VisitorRepository(self.store)
        self.tracking = TrackingService(self.visitors)
        self.reports = ReportService(
            self.visitors,
            site_visits_limit=settings.site_visits_limit,
        )

    @classmethod
    def from_env(cls) -> "Container":
        return cls(Settings.from_env())

    def close(self) -> None:
        self.store.close()

    def __enter__(self) -> "Container":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


_container: Container | None = None


def get_container() -> Container:
    """Get the process-wide container, building it on first use.

    Lambda handlers share it across warm invocations.
    """
    global _container
    if _container is None:
        _container = Container.from_env()
    return _container
