"""Service classes for business logic."""

from visteria.services.report_service import ReportService, utc_day_bounds
from visteria.services.tracking_service import TrackingService

__all__ = [
    "ReportService",
    "TrackingService",
    "utc_day_bounds",
]
