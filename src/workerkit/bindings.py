"""
Reconciliation of named binding entries.

A binding list (``d1_databases``, ``r2_buckets``) holds mappings keyed by
their ``binding`` field. Reconciling a new entry drops any entry with the
same logical name and appends the new one at the end, so the list never
holds two entries with one name and all unrelated entries keep their
relative order.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List

BINDING_KEY = "binding"


def reconcile(
    existing: Any,
    new_binding: Dict[str, Any],
    key: str = BINDING_KEY,
) -> List[Any]:
    """
    Merge ``new_binding`` into ``existing``.

    ``existing`` may be missing or malformed in a hand-edited document;
    anything that is not a list is treated as empty. Non-mapping elements
    are kept as they are.

    Returns:
        A new list; ``existing`` is not modified.
    """
    name = new_binding[key]
    items = existing if isinstance(existing, list) else []
    kept = [
        item for item in items
        if not (isinstance(item, dict) and item.get(key) == name)
    ]
    kept.append(dict(new_binding))
    return kept


@dataclass
class DatabaseBinding:
    binding: str
    database_name: str
    database_id: str
    migrations_dir: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BucketBinding:
    binding: str
    bucket_name: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
