# Copyright (c) 2025 Joe Walter
# GNU General Public License v3.0

import asyncio
from enum import Enum
from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol, runtime_checkable

from .result import Result, ValueResult

class FileSystemEventType(Enum):
	CREATED = 1
	UPDATED = 2
	DELETED = 3
	MOVED   = 4
	COPIED  = 5

@dataclass(frozen=True)
class FileSystemEvent:
	'''A change observed under a watched root. `new_path` is only set for `MOVED` and `COPIED` events.'''

	original_path : str
	is_directory  : bool
	event_type    : FileSystemEventType
	new_path      : str|None = None

	@property
	def is_well_formed(self) -> bool:
		needs_new_path = self.event_type in (FileSystemEventType.MOVED, FileSystemEventType.COPIED)
		return needs_new_path == (self.new_path is not None)

@dataclass(frozen=True)
class DirEntry:
	'''A listed file or directory.'''

	name : str
	path : str

class PathTools(Protocol):
	'''Path conventions of a filesystem. Implemented by `LocalPathTools` and `RemotePathTools`.'''

	sep : str

	def normalize(self, path:str) -> str:
		...

	def combine(self, base:str, suffix:str) -> str:
		...

	def parent_dir(self, path:str) -> str:
		...

	def file_name(self, path:str) -> str:
		...

	def paths_equal(self, a:str|None, b:str|None) -> bool:
		...

@runtime_checkable
class FileInfoProvider(Protocol):
	'''Lists the immediate children of a directory.'''

	def list_dirs(self, path:str, include_hidden:bool) -> ValueResult[list[DirEntry]]:
		...

	def list_files(self, path:str, include_hidden:bool) -> ValueResult[list[DirEntry]]:
		...

	def dir_exists(self, path:str) -> bool:
		...

@runtime_checkable
class FileOperations(Protocol):
	'''File and directory operations shared by every filesystem. Each method reports failures through the returned `Result`.'''

	def new_file_at(self, dir_path:str, file_name:str) -> Result:
		...

	def new_dir_at(self, dir_path:str, dir_name:str) -> Result:
		...

	def rename_file_at(self, file_path:str, new_name:str) -> Result:
		...

	def rename_dir_at(self, dir_path:str, new_name:str) -> Result:
		...

	def move_file_to(self, file_path:str, dest_dir:str) -> Result:
		...

	def move_dir_to(self, dir_path:str, dest_dir:str) -> Result:
		...

	def copy_file_to(self, file_path:str, dest_dir:str) -> Result:
		...

	def copy_dir_to(self, dir_path:str, dest_dir:str) -> Result:
		...

	def duplicate_file(self, file_path:str, copy_name:str) -> Result:
		...

	def duplicate_dir(self, dir_path:str, copy_name:str) -> Result:
		...

	def delete_file(self, file_path:str) -> Result:
		...

	def delete_dir(self, dir_path:str) -> Result:
		...

@runtime_checkable
class TransferOperations(Protocol):
	'''Whole-file transfers between the local machine and a remote filesystem.'''

	def upload_file(self, local_path:str, remote_path:str) -> Result:
		...

	def download_file(self, remote_path:str, local_path:str) -> Result:
		...

class RemoteFileOperations(FileOperations, TransferOperations, Protocol):
	'''The capability the synchronizer needs on the remote side.'''
	pass

class FileSystem(Protocol):
	'''The capability set of one filesystem.'''

	path_tools : PathTools
	info       : FileInfoProvider
	io         : FileOperations

	def label(self) -> str:
		...

ChangeHandler = Callable[[FileSystemEvent], Awaitable[None]]

class ChangeWatcher(Protocol):
	'''Observes one filesystem root and raises change events until cancelled.'''

	sync_hidden_files : bool
	change_detected   : list[ChangeHandler]

	async def start(self, cancel:asyncio.Event) -> Result:
		...

@dataclass(frozen=True, eq=False)
class Location:
	'''A directory on a specific filesystem.'''

	file_system : FileSystem
	path        : str

	def exists(self) -> bool:
		return self.file_system.info.dir_exists(self.path)

	def __eq__(self, other:object) -> bool:
		if not isinstance(other, Location):
			return NotImplemented
		return self.file_system is other.file_system and self.file_system.path_tools.paths_equal(self.path, other.path)

	def __hash__(self) -> int:
		# paths that differ only in case may be equal, so only the filesystem is hashed
		return hash(id(self.file_system))

	def __str__(self) -> str:
		return f"{self.file_system.label()}:{self.path}"
