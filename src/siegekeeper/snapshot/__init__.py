"""Campaign snapshot capture and restore.

* :mod:`.document` - the portable snapshot document and its validation.
* :mod:`.reader` - capture a stored campaign into a document.
* :mod:`.remap` - per-restore translation of source identifiers.
* :mod:`.writer` - restore a document as a new campaign in one transaction.
"""

from .document import (
    FORMAT_VERSION,
    CampaignSnapshot,
    dangling_references,
    dump_snapshot,
    load_snapshot,
    parse_snapshot,
    save_snapshot,
    strip_identifiers,
)
from .reader import capture, capture_campaign
from .remap import EntityKind, RemapTable
from .writer import RestoredCampaign, SnapshotRestorer, restore

__all__ = [
    "FORMAT_VERSION",
    "CampaignSnapshot",
    "EntityKind",
    "RemapTable",
    "RestoredCampaign",
    "SnapshotRestorer",
    "capture",
    "capture_campaign",
    "dangling_references",
    "dump_snapshot",
    "load_snapshot",
    "parse_snapshot",
    "restore",
    "save_snapshot",
    "strip_identifiers",
]
