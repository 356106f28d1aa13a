from .auth import AuthSession, AuthUser
from .base import DirectoryBackend
from .hosted import HostedBackend
from .object_storage import LocalFile, ObjectStorage
from .rest import RestBackend
from .service import DirectoryService, get_backend

__all__ = [
    "AuthSession",
    "AuthUser",
    "DirectoryBackend",
    "DirectoryService",
    "HostedBackend",
    "LocalFile",
    "ObjectStorage",
    "RestBackend",
    "get_backend",
]
