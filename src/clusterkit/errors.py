# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Error taxonomy for cluster lifecycle orchestration.

Handlers raise these; the clone service turns them into structured
responses. Only `TransientError` (and anything raised by a remote command)
is absorbed by the readiness poller; everything else surfaces to the caller.
"""


class ClusterkitError(Exception):
    """Base class for all orchestrator errors."""

    ...


class ValidationError(ClusterkitError):
    """Malformed request field or unmet precondition. Not retryable without changing the request."""

    ...


class NotFound(ClusterkitError):
    """A requested resource does not exist."""

    def __init__(self, kind: str, name: str, namespace: str | None = None, *, prefix: str = "") -> None:
        self.kind = kind
        self.name = name
        self.namespace = namespace
        where = f" in namespace {namespace}" if namespace else ""
        super().__init__(f'{prefix}{kind} "{name}" not found{where}')


class ConflictError(ClusterkitError):
    """Another operation for the same target is in flight. Retryable after human intervention."""

    def __init__(self, message: str, *, conflicting: str | None = None) -> None:
        self.conflicting = conflicting
        super().__init__(message)


class TransientError(ClusterkitError):
    """
    A temporary failure while observing external state (command execution,
    malformed status payload). Pollers treat it as "not yet".
    """

    ...


class DeadlineExceeded(ClusterkitError):
    """A bounded wait ran out of time."""

    def __init__(self, subject: str, message: str | None = None) -> None:
        self.subject = subject
        super().__init__(message or f"timed out waiting for {subject}")


class TopologyError(ClusterkitError):
    """The backup endpoint for a cluster is missing or ambiguous."""

    def __init__(self, cluster: str, found: int) -> None:
        self.cluster = cluster
        self.found = found
        super().__init__(f"expected exactly one backup repository pod for cluster {cluster}, found {found}")


class StoreError(ClusterkitError):
    """A resource store call (get/list/create/delete) failed."""

    ...
