# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Interfaces of the external collaborators: resource store, remote command
executor and backup subsystem.
"""

from .backup import BackupSubsystem, StoreBackupSubsystem, backup_task_name
from .executor import CommandExecutor, ExecResult
from .resources import (
    Kind,
    LabelSelector,
    Resource,
    ResourceStore,
    format_selector,
    matches,
    parse_selector,
)

__all__ = [
    # resources
    "Kind",
    "LabelSelector",
    "Resource",
    "ResourceStore",
    "format_selector",
    "matches",
    "parse_selector",
    # executor
    "CommandExecutor",
    "ExecResult",
    # backup
    "BackupSubsystem",
    "StoreBackupSubsystem",
    "backup_task_name",
]
