from chronology.queue.normalize import sanitize_text_field, to_utc_timestamp
from chronology.queue.queue import QUEUE_META_KEY, Queue

__all__ = [
    "QUEUE_META_KEY",
    "Queue",
    "sanitize_text_field",
    "to_utc_timestamp",
]
