from __future__ import annotations

"""
clusterkit.core.utils
=====================

Low-level helpers with no external dependencies:
- compact JSON (de)serialization for bus payloads,
- collision-resistant identifiers for workflows and record names.
"""

import json
import uuid
from secrets import choice
from typing import Any

from .types import WORKFLOW_SUFFIX_ALPHABET, WORKFLOW_SUFFIX_SIZE


def dumps(x: Any) -> bytes:
    """Compact UTF-8 JSON, used as the Kafka value serializer."""
    return json.dumps(x, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def loads(b: bytes) -> Any:
    return json.loads(b.decode("utf-8"))


def new_workflow_id() -> str:
    """
    Random (version 4) UUID in canonical 36-character form. Drawn from the OS
    entropy pool, so concurrent callers in any process never need to coordinate.
    """
    return str(uuid.uuid4())


def random_suffix(size: int = WORKFLOW_SUFFIX_SIZE, alphabet: str = WORKFLOW_SUFFIX_ALPHABET) -> str:
    """Short random string used to keep record names distinct (not an identity)."""
    if size <= 0:
        raise ValueError("size must be positive")
    if not alphabet:
        raise ValueError("alphabet must be a non-empty string")
    return "".join(choice(alphabet) for _ in range(size))
