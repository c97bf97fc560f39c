"""
Credential store contract and its implementations.
"""

from .base import (
    GuardianStore,
    GuardianRecord,
    NewGuardian,
    SessionRecord,
    DeviceRecord,
    StaffRecord,
    StudentRecord,
    PROFILE_FIELDS,
)
from .memory import MemoryGuardianStore
from .postgres import PostgresGuardianStore
from .photos import PhotoStorage, MinioPhotoStorage, MemoryPhotoStorage

__all__ = [
    "GuardianStore",
    "GuardianRecord",
    "NewGuardian",
    "SessionRecord",
    "DeviceRecord",
    "StaffRecord",
    "StudentRecord",
    "PROFILE_FIELDS",
    "MemoryGuardianStore",
    "PostgresGuardianStore",
    "PhotoStorage",
    "MinioPhotoStorage",
    "MemoryPhotoStorage",
]
