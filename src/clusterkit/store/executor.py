# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Remote command execution inside a running cluster member.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from ..models import Pod

__all__ = ["ExecResult", "CommandExecutor"]


@dataclass(frozen=True)
class ExecResult:
    stdout: str = ""
    stderr: str = ""


@runtime_checkable
class CommandExecutor(Protocol):
    """
    Run `argv` in `container` of `pod` and return its captured output.

    Implementations raise on transport or non-zero-exit failures; callers that
    poll treat any such failure as "not yet".
    """

    async def exec(self, pod: Pod, container: str, argv: Sequence[str]) -> ExecResult: ...
