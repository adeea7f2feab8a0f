from chronology.protocols.scheduler import EventScheduler
from chronology.protocols.storage import SubjectMetaStore

__all__ = [
    "EventScheduler",
    "SubjectMetaStore",
]
