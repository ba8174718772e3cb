# Copyright (c) 2025 Joe Walter
# GNU General Public License v3.0

import os
import stat
import shutil

from .paths import LocalPathTools
from .result import ValueResult, returns_result
from .types import DirEntry, Location
from .log import logger, _exc_summary

def _is_hidden(entry:os.DirEntry) -> bool:
	'''Dot files, and files with the hidden attribute on Windows.'''

	if entry.name.startswith("."):
		return True
	try:
		attributes = getattr(entry.stat(follow_symlinks=False), "st_file_attributes", 0)
	except OSError:
		return False
	return bool(attributes & getattr(stat, "FILE_ATTRIBUTE_HIDDEN", 0))

def _check_free(path:str) -> None:
	if os.path.lexists(path):
		raise FileExistsError(17, "File exists", path)

class LocalFileInfoProvider:
	'''Lists local directories with `os.scandir`. Symlinks to directories are not followed.'''

	def _scan(self, path:str, include_hidden:bool, want_dirs:bool) -> ValueResult[list[DirEntry]]:
		found = []
		try:
			with os.scandir(path) as entries:
				for entry in entries:
					if not include_hidden and _is_hidden(entry):
						continue
					try:
						is_dir = entry.is_dir(follow_symlinks=False)
						if not is_dir and entry.is_symlink() and entry.is_dir():
							logger.debug(f"Skipped directory symlink: {entry.path}")
							continue
					except OSError:
						continue
					if is_dir == want_dirs:
						found.append(DirEntry(entry.name, LocalPathTools.combine(path, entry.name)))
		except OSError as e:
			return ValueResult.error(_exc_summary(e))
		found.sort(key=lambda d: d.name)
		return ValueResult.ok_value(found)

	def list_dirs(self, path:str, include_hidden:bool) -> ValueResult[list[DirEntry]]:
		return self._scan(path, include_hidden, want_dirs=True)

	def list_files(self, path:str, include_hidden:bool) -> ValueResult[list[DirEntry]]:
		return self._scan(path, include_hidden, want_dirs=False)

	def dir_exists(self, path:str) -> bool:
		return os.path.isdir(path)

class LocalFileIoHandler:
	'''File operations on the local filesystem. None of them overwrite an existing entry.'''

	@returns_result()
	def new_file_at(self, dir_path:str, file_name:str) -> None:
		with open(LocalPathTools.combine(dir_path, file_name), "x"):
			pass

	@returns_result()
	def new_dir_at(self, dir_path:str, dir_name:str) -> None:
		os.mkdir(LocalPathTools.combine(dir_path, dir_name))

	@returns_result()
	def rename_file_at(self, file_path:str, new_name:str) -> None:
		target = LocalPathTools.combine(LocalPathTools.parent_dir(file_path), new_name)
		_check_free(target)
		os.rename(file_path, target)

	@returns_result()
	def rename_dir_at(self, dir_path:str, new_name:str) -> None:
		target = LocalPathTools.combine(LocalPathTools.parent_dir(dir_path), new_name)
		_check_free(target)
		os.rename(dir_path, target)

	@returns_result()
	def move_file_to(self, file_path:str, dest_dir:str) -> None:
		target = LocalPathTools.combine(dest_dir, LocalPathTools.file_name(file_path))
		_check_free(target)
		shutil.move(file_path, target)

	@returns_result()
	def move_dir_to(self, dir_path:str, dest_dir:str) -> None:
		target = LocalPathTools.combine(dest_dir, LocalPathTools.file_name(dir_path))
		_check_free(target)
		shutil.move(dir_path, target)

	@returns_result()
	def copy_file_to(self, file_path:str, dest_dir:str) -> None:
		target = LocalPathTools.combine(dest_dir, LocalPathTools.file_name(file_path))
		_check_free(target)
		shutil.copy2(file_path, target)

	@returns_result()
	def copy_dir_to(self, dir_path:str, dest_dir:str) -> None:
		shutil.copytree(dir_path, LocalPathTools.combine(dest_dir, LocalPathTools.file_name(dir_path)), symlinks=True)

	@returns_result()
	def duplicate_file(self, file_path:str, copy_name:str) -> None:
		target = LocalPathTools.combine(LocalPathTools.parent_dir(file_path), copy_name)
		_check_free(target)
		shutil.copy2(file_path, target)

	@returns_result()
	def duplicate_dir(self, dir_path:str, copy_name:str) -> None:
		shutil.copytree(dir_path, LocalPathTools.combine(LocalPathTools.parent_dir(dir_path), copy_name), symlinks=True)

	@returns_result()
	def delete_file(self, file_path:str) -> None:
		os.remove(file_path)

	@returns_result()
	def delete_dir(self, dir_path:str) -> None:
		shutil.rmtree(dir_path)

class LocalFileSystem:
	'''The local machine's filesystem.'''

	def __init__(self):
		self.path_tools = LocalPathTools
		self.info       = LocalFileInfoProvider()
		self.io         = LocalFileIoHandler()

	def label(self) -> str:
		return "local"

	def location(self, path:str) -> Location:
		'''A `Location` for the normalized `path`.'''

		return Location(self, LocalPathTools.normalize(path))

	def __repr__(self) -> str:
		return f"{type(self).__name__}()"
