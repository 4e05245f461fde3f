"""Background workers."""

from artistdesk.application.workers.maintenance_worker import MaintenanceWorker

__all__ = ["MaintenanceWorker"]
