# Copyright (c) 2025 Joe Walter
# GNU General Public License v3.0

import os
import asyncio
import threading

from sftpmirror.paths import RemotePathTools
from sftpmirror.result import Result, ValueResult
from sftpmirror.types import DirEntry

class TempLoggingLevel:
	def __init__(self, logger, level):
		self.logger = logger
		self.level = level
	def __enter__(self):
		self.old_level = self.logger.level
		self.logger.setLevel(self.level)
	def __exit__(self, exc_type, exc_val, exc_tb):
		self.logger.setLevel(self.old_level)

class MemoryFileSystem:
	'''
	An in-memory remote filesystem that records every file operation.

	Operations on a path in `fail_paths` fail, and listing a directory in `fail_listing` fails. If `gate` is set, transfers signal `entered` and then wait for the gate to open.
	'''

	def __init__(self, *dirs:str, label:str = "memory"):
		self.path_tools   = RemotePathTools
		self.info         = self
		self.io           = self
		self._label       = label
		self.dirs         : set[str] = {"/", *dirs}
		self.files        : dict[str, bytes] = {}
		self.calls        : list[tuple[str, tuple]] = []
		self.fail_paths   : set[str] = set()
		self.fail_listing : set[str] = set()
		self.gate         : threading.Event|None = None
		self.entered      = threading.Event()

	def label(self):
		return self._label

	def add_file(self, path:str, data:bytes = b"") -> None:
		self.dirs.add(RemotePathTools.parent_dir(path))
		self.files[path] = data

	def call_names(self) -> list[str]:
		return [name for name, args in self.calls]

	# listing

	def _children(self, path:str, include_hidden:bool, entries) -> ValueResult:
		if path in self.fail_listing or path not in self.dirs:
			return ValueResult.error(f"Cannot list {path}")
		found = [
			DirEntry(RemotePathTools.file_name(p), p)
			for p in entries
			if p != path and RemotePathTools.parent_dir(p) == path and (include_hidden or not RemotePathTools.file_name(p).startswith("."))
		]
		return ValueResult.ok_value(sorted(found, key=lambda d: d.name))

	def list_dirs(self, path, include_hidden):
		return self._children(path, include_hidden, list(self.dirs))

	def list_files(self, path, include_hidden):
		return self._children(path, include_hidden, list(self.files))

	def dir_exists(self, path):
		return path in self.dirs

	# operations

	def _record(self, name:str, *args:str) -> Result|None:
		self.calls.append((name, args))
		for arg in args:
			if arg in self.fail_paths:
				return Result.error(f"{name} failed: {arg}")
		return None

	def _subtree(self, path:str) -> tuple[list[str], list[str]]:
		prefix = path + "/"
		return (
			[d for d in self.dirs if d == path or d.startswith(prefix)],
			[f for f in self.files if f.startswith(prefix)],
		)

	def _relocate(self, path:str, target:str, keep:bool) -> Result:
		if target in self.dirs or target in self.files:
			return Result.error(f"File exists: {target}")
		if RemotePathTools.parent_dir(target) not in self.dirs:
			return Result.error(f"No such directory: {RemotePathTools.parent_dir(target)}")
		if path in self.files:
			self.files[target] = self.files[path]
			if not keep:
				del self.files[path]
			return Result.ok()
		if path in self.dirs:
			dirs, files = self._subtree(path)
			for d in dirs:
				self.dirs.add(target + d[len(path):])
			for f in files:
				self.files[target + f[len(path):]] = self.files[f]
			if not keep:
				self.dirs.difference_update(dirs)
				for f in files:
					del self.files[f]
			return Result.ok()
		return Result.error(f"No such file: {path}")

	def new_file_at(self, dir_path, file_name):
		path = RemotePathTools.combine(dir_path, file_name)
		error = self._record("new_file_at", dir_path, file_name)
		if error:
			return error
		self.files[path] = b""
		return Result.ok()

	def new_dir_at(self, dir_path, dir_name):
		path = RemotePathTools.combine(dir_path, dir_name)
		error = self._record("new_dir_at", dir_path, dir_name) or self._record_fail(path)
		if error:
			return error
		if dir_path not in self.dirs:
			return Result.error(f"No such directory: {dir_path}")
		if path in self.dirs or path in self.files:
			return Result.error(f"File exists: {path}")
		self.dirs.add(path)
		return Result.ok()

	def _record_fail(self, path:str) -> Result|None:
		if path in self.fail_paths:
			return Result.error(f"failed: {path}")
		return None

	def rename_file_at(self, file_path, new_name):
		return self._record("rename_file_at", file_path, new_name) or self._relocate(file_path, RemotePathTools.combine(RemotePathTools.parent_dir(file_path), new_name), keep=False)

	def rename_dir_at(self, dir_path, new_name):
		return self._record("rename_dir_at", dir_path, new_name) or self._relocate(dir_path, RemotePathTools.combine(RemotePathTools.parent_dir(dir_path), new_name), keep=False)

	def move_file_to(self, file_path, dest_dir):
		return self._record("move_file_to", file_path, dest_dir) or self._relocate(file_path, RemotePathTools.combine(dest_dir, RemotePathTools.file_name(file_path)), keep=False)

	def move_dir_to(self, dir_path, dest_dir):
		return self._record("move_dir_to", dir_path, dest_dir) or self._relocate(dir_path, RemotePathTools.combine(dest_dir, RemotePathTools.file_name(dir_path)), keep=False)

	def copy_file_to(self, file_path, dest_dir):
		return self._record("copy_file_to", file_path, dest_dir) or self._relocate(file_path, RemotePathTools.combine(dest_dir, RemotePathTools.file_name(file_path)), keep=True)

	def copy_dir_to(self, dir_path, dest_dir):
		return self._record("copy_dir_to", dir_path, dest_dir) or self._relocate(dir_path, RemotePathTools.combine(dest_dir, RemotePathTools.file_name(dir_path)), keep=True)

	def duplicate_file(self, file_path, copy_name):
		return self._record("duplicate_file", file_path, copy_name) or self._relocate(file_path, RemotePathTools.combine(RemotePathTools.parent_dir(file_path), copy_name), keep=True)

	def duplicate_dir(self, dir_path, copy_name):
		return self._record("duplicate_dir", dir_path, copy_name) or self._relocate(dir_path, RemotePathTools.combine(RemotePathTools.parent_dir(dir_path), copy_name), keep=True)

	def delete_file(self, file_path):
		error = self._record("delete_file", file_path)
		if error:
			return error
		if self.files.pop(file_path, None) is None:
			return Result.error(f"No such file: {file_path}")
		return Result.ok()

	def delete_dir(self, dir_path):
		error = self._record("delete_dir", dir_path)
		if error:
			return error
		if dir_path not in self.dirs:
			return Result.error(f"No such directory: {dir_path}")
		dirs, files = self._subtree(dir_path)
		self.dirs.difference_update(dirs)
		for f in files:
			del self.files[f]
		return Result.ok()

	def _wait_at_gate(self) -> None:
		if self.gate is not None:
			self.entered.set()
			self.gate.wait(10)

	def upload_file(self, local_path, remote_path):
		error = self._record("upload_file", local_path, remote_path)
		if error:
			return error
		self._wait_at_gate()
		if RemotePathTools.parent_dir(remote_path) not in self.dirs:
			return Result.error(f"No such directory: {RemotePathTools.parent_dir(remote_path)}")
		if os.path.isfile(local_path):
			with open(local_path, "rb") as f:
				self.files[remote_path] = f.read()
		else:
			self.files[remote_path] = b""
		return Result.ok()

	def download_file(self, remote_path, local_path):
		error = self._record("download_file", remote_path, local_path)
		if error:
			return error
		self._wait_at_gate()
		with open(local_path, "wb") as f:
			f.write(self.files[remote_path])
		return Result.ok()

class FakeWatcher:
	'''Raises a fixed list of events once started, then waits to be cancelled.'''

	def __init__(self, *events):
		self.sync_hidden_files = False
		self.change_detected   = []
		self.events            = list(events)
		self.start_calls       = 0
		self.on_start          = None

	async def emit(self, event):
		for handler in list(self.change_detected):
			await handler(event)

	async def start(self, cancel):
		self.start_calls += 1
		if self.on_start is not None:
			self.on_start()
		for event in self.events:
			await self.emit(event)
		await cancel.wait()
		return Result.cancelled()

class FailingWatcher(FakeWatcher):
	'''A watcher whose observer dies immediately.'''

	async def start(self, cancel):
		self.start_calls += 1
		return Result.error("observer died")

class Recorder:
	'''A sync event handler that collects reports and signals once `expected` of them arrived.'''

	def __init__(self, expected:int = 1):
		self.expected = expected
		self.reports  = []
		self.done     = asyncio.Event()
		if expected <= 0:
			self.done.set()

	def __call__(self, event, remote_path, result):
		self.reports.append((event, remote_path, result))
		if len(self.reports) >= self.expected:
			self.done.set()

def write_file(path:str, data:bytes = b"data") -> str:
	os.makedirs(os.path.dirname(path), exist_ok=True)
	with open(path, "wb") as f:
		f.write(data)
	return path
