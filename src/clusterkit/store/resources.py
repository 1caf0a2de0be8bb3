# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Resource store interface (control-plane agnostic).

The orchestrator never talks to a concrete control plane directly. It is
handed an object satisfying `ResourceStore` at construction time, which makes
an in-memory fake a drop-in replacement in tests.

Label selectors are exact-match key=value pairs combined with AND.
"""

from collections.abc import Mapping
from enum import Enum
from typing import Protocol, Union, runtime_checkable

from ..models import Cluster, Pod, Task, WorkflowRecord

__all__ = [
    "Kind",
    "LabelSelector",
    "Resource",
    "ResourceStore",
    "format_selector",
    "matches",
    "parse_selector",
]


class Kind(str, Enum):
    cluster = "cluster"
    pod = "pod"
    task = "task"
    workflow = "workflow"


Resource = Union[Cluster, Pod, Task, WorkflowRecord]
LabelSelector = Mapping[str, str]


def format_selector(selector: LabelSelector) -> str:
    """Render as `k=v,k2=v2` (keys in insertion order)."""
    return ",".join(f"{k}={v}" for k, v in selector.items())


def parse_selector(text: str) -> dict[str, str]:
    """
    Parse `k=v,k2=v2` into a mapping. Whitespace around items is ignored;
    an empty string selects everything.
    """
    out: dict[str, str] = {}
    for item in text.split(","):
        item = item.strip()
        if not item:
            continue
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"invalid label selector term: {item!r}")
        out[key.strip()] = value.strip()
    return out


def matches(labels: Mapping[str, str], selector: LabelSelector) -> bool:
    """True when every selector pair is present in `labels` with the same value."""
    return all(labels.get(k) == v for k, v in selector.items())


@runtime_checkable
class ResourceStore(Protocol):
    """
    Async access to cluster, pod, task and workflow records.

    Notes:
        - Every call is individually atomic; nothing spans calls.
        - `get` returns None for a missing record; other failures raise StoreError.
        - `create` MUST fail (StoreError) when a record with the same
          (kind, namespace, name) already exists.
        - `delete_by_selector` is idempotent and returns how many records it removed.
    """

    async def get(self, kind: Kind, name: str, namespace: str) -> Resource | None: ...
    async def list(self, kind: Kind, selector: LabelSelector, namespace: str) -> list[Resource]: ...
    async def create(self, kind: Kind, obj: Resource) -> Resource: ...
    async def delete_by_selector(self, kind: Kind, selector: LabelSelector, namespace: str) -> int: ...
