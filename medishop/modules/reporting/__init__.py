from .service import ReportingService

__all__ = ["ReportingService"]
