from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

from clusterkit.models import Pod
from clusterkit.store.executor import ExecResult

Script = Sequence[Any]  # str (stdout) | BaseException


class ScriptedExecutor:
    """
    CommandExecutor returning canned outputs per program (`argv[0]`).

    Each program has a script: a sequence of stdout strings or exceptions,
    consumed one per call. The last entry repeats once the script runs out.
    """

    def __init__(self, **scripts: Script) -> None:
        self.scripts: dict[str, list[Any]] = {k: list(v) for k, v in scripts.items()}
        self.calls: list[tuple[str, str, tuple[str, ...]]] = []

    def count(self, program: str) -> int:
        return sum(1 for _pod, _c, argv in self.calls if argv and argv[0] == program)

    async def exec(self, pod: Pod, container: str, argv: Sequence[str]) -> ExecResult:
        self.calls.append((pod.name, container, tuple(argv)))
        script = self.scripts.get(argv[0])
        if not script:
            raise RuntimeError(f"no script for {argv[0]!r}")
        item = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(item, BaseException):
            raise item
        return ExecResult(stdout=item)


def leader(state: str = "running", pending_restart: bool | None = None) -> str:
    doc: dict[str, Any] = {"state": state, "role": "master"}
    if pending_restart is not None:
        doc["pending_restart"] = pending_restart
    return json.dumps(doc)
