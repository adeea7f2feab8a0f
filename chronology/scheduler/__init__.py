from chronology.scheduler.ap_scheduler import ChronologyScheduler, event_job_id
from chronology.scheduler.hooks import ActionHandler, ActionHooks, load_handlers

__all__ = [
    "ActionHandler",
    "ActionHooks",
    "ChronologyScheduler",
    "event_job_id",
    "load_handlers",
]
