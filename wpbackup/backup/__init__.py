"""
Backup module for wpbackup.

This module handles the core backup functionality including:
- Artifact naming
- Database dump and wp-content archive production
- Execution orchestration
- Retention policy enforcement
"""

from .artifacts import ArtifactKind, BackupArtifact
from .executor import BackupExecutor, BackupResult, PreflightError
from .producer import ProductionError, produce_database_dump, produce_content_archive
from .retention import RetentionManager, RotationReport, partition_artifacts

__all__ = [
    'ArtifactKind',
    'BackupArtifact',
    'BackupExecutor',
    'BackupResult',
    'PreflightError',
    'ProductionError',
    'produce_database_dump',
    'produce_content_archive',
    'RetentionManager',
    'RotationReport',
    'partition_artifacts'
]
