from app.tasks.scheduler import (
    start_scheduler,
    stop_scheduler,
    get_scheduler_status,
    trigger_job_manually,
)
from app.tasks.reconciler import reconcile_purchase_lists, reconcile_purchase_list

__all__ = [
    "start_scheduler",
    "stop_scheduler",
    "get_scheduler_status",
    "trigger_job_manually",
    "reconcile_purchase_lists",
    "reconcile_purchase_list",
]
