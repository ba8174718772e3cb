# Copyright (c) 2025 Joe Walter
# GNU General Public License v3.0

from .core import Synchronizer, SyncStats
from .config import SyncConfig
from .reconcile import InitialReconciler, ReconcileResult
from .result import Result, ValueResult
from .paths import LocalPathTools, RemotePathTools, PathMapper
from .types import FileSystemEvent, FileSystemEventType, DirEntry, Location
from .local import LocalFileSystem
from .sftp import SftpConnection, SftpFileSystem
from .watch import DirectoryWatcher
from .errors import IncompatiblePathError, StateError, UnsupportedOperationError

__all__ = [
	"Synchronizer",
	"SyncStats",
	"SyncConfig",
	"InitialReconciler",
	"ReconcileResult",
	"Result",
	"ValueResult",
	"LocalPathTools",
	"RemotePathTools",
	"PathMapper",
	"FileSystemEvent",
	"FileSystemEventType",
	"DirEntry",
	"Location",
	"LocalFileSystem",
	"SftpConnection",
	"SftpFileSystem",
	"DirectoryWatcher",
	"IncompatiblePathError",
	"StateError",
	"UnsupportedOperationError",
]
