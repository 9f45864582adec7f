"""
Identifier generation for stored documents.

Two id families exist on disk: random 24-hex ids for people, areas and
placements, and ObjectId-style ids (timestamp, machine, process, counter) for
areas saved through the editor and for things.
"""

import itertools
import threading
import time
import uuid

ID_LENGTH = 24
BUNDLE_KEY_PREFIX = "rr"

_object_id_counter = itertools.count()
_object_id_lock = threading.Lock()


def generate_id() -> str:
    """Return a random 24 character lowercase hex id."""
    return uuid.uuid4().hex[:ID_LENGTH]


def generate_bundle_key() -> str:
    """Return an area bundle key (``rr`` followed by a random 24-hex id)."""
    return f"{BUNDLE_KEY_PREFIX}{generate_id()}"


def format_object_id(timestamp: float, machine_id: int, process_id: int, counter: int) -> str:
    """
    Format an ObjectId-style identifier.

    Layout: 8 hex digits of seconds since the epoch, 6 of machine id, 4 of
    process id and 6 of counter.
    """
    return f"{int(timestamp):08x}{machine_id:06x}{process_id:04x}{counter:06x}"


def generate_object_id() -> str:
    """Return a new ObjectId-style id from the current time and a process-wide counter."""
    with _object_id_lock:
        counter = next(_object_id_counter) & 0xFFFFFF
    return format_object_id(time.time(), 0, 0, counter)
