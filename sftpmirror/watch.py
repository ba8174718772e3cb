# Copyright (c) 2025 Joe Walter
# GNU General Public License v3.0

import os
import asyncio

from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver
from watchdog.events import FileSystemEventHandler

from .local import LocalFileSystem
from .paths import LocalPathTools
from .result import Result
from .types import ChangeHandler, FileSystemEvent, FileSystemEventType, Location
from .errors import UnsupportedOperationError
from .log import logger, _exc_summary

class _EventBridge(FileSystemEventHandler):
	'''Translates watchdog events, raised on the observer thread, into `FileSystemEvent`s queued on the event loop.'''

	def __init__(self, watcher:"DirectoryWatcher", loop:asyncio.AbstractEventLoop, queue:"asyncio.Queue[FileSystemEvent]"):
		self.watcher = watcher
		self.loop    = loop
		self.queue   = queue

	def _post(self, event:FileSystemEvent) -> None:
		if not self.watcher.sync_hidden_files and (self.watcher.is_hidden(event.original_path) or (event.new_path is not None and self.watcher.is_hidden(event.new_path))):
			return
		logger.debug(f"{event.event_type.name} {event.original_path}" + (f" -> {event.new_path}" if event.new_path else ""))
		try:
			self.loop.call_soon_threadsafe(self.queue.put_nowait, event)
		except RuntimeError:
			# the loop is closed
			logger.debug(f"Dropped event after shutdown: {event.original_path}")

	def on_created(self, event):
		path = os.fsdecode(event.src_path)
		if event.is_directory:
			self.watcher.known_dirs.add(path)
		self._post(FileSystemEvent(path, event.is_directory, FileSystemEventType.CREATED))

	def on_modified(self, event):
		if event.is_directory:
			return
		self._post(FileSystemEvent(os.fsdecode(event.src_path), False, FileSystemEventType.UPDATED))

	def on_deleted(self, event):
		path = os.fsdecode(event.src_path)
		# Some platforms report a deleted directory as a deleted file.
		is_directory = event.is_directory or path in self.watcher.known_dirs
		self.watcher.forget_dir(path)
		self._post(FileSystemEvent(path, is_directory, FileSystemEventType.DELETED))

	def on_moved(self, event):
		path     = os.fsdecode(event.src_path)
		new_path = os.fsdecode(event.dest_path)
		is_directory = event.is_directory or path in self.watcher.known_dirs
		if is_directory:
			self.watcher.move_dir(path, new_path)
		if not self.watcher.sync_hidden_files:
			was_hidden = self.watcher.is_hidden(path)
			is_hidden  = self.watcher.is_hidden(new_path)
			if was_hidden and not is_hidden:
				# e.g. an editor saving through a hidden temporary file
				self._post_tree(new_path, is_directory)
				return
			if is_hidden and not was_hidden:
				self._post(FileSystemEvent(path, is_directory, FileSystemEventType.DELETED))
				return
		self._post(FileSystemEvent(path, is_directory, FileSystemEventType.MOVED, new_path))

	def _post_tree(self, path:str, is_directory:bool) -> None:
		'''Post `CREATED` for `path` and, for a directory, for everything below it, parents first.'''

		if not is_directory:
			self._post(FileSystemEvent(path, False, FileSystemEventType.CREATED))
			return
		for dirpath, dirnames, filenames in os.walk(path):
			if not self.watcher.sync_hidden_files:
				dirnames[:] = [d for d in dirnames if not d.startswith(".")]
			dirnames.sort()
			self.watcher.known_dirs.add(dirpath)
			self._post(FileSystemEvent(dirpath, True, FileSystemEventType.CREATED))
			for name in sorted(filenames):
				self._post(FileSystemEvent(os.path.join(dirpath, name), False, FileSystemEventType.CREATED))

class DirectoryWatcher:
	'''
	Watches a local directory tree with watchdog and raises a `FileSystemEvent` for each change.

	The native observer of the platform is used, or a polling observer when `interval` (seconds) is given. Watchdog does not detect copies, so `COPIED` events are never raised. Hidden entries (a path component starting with '.') are ignored unless `sync_hidden_files` is set.
	'''

	def __init__(self, root:str|Location, interval:float|None = None, sync_hidden_files:bool = False):
		if isinstance(root, Location):
			if not isinstance(root.file_system, LocalFileSystem):
				raise UnsupportedOperationError("Can only watch local directories.")
			root = root.path
		if interval is not None and interval <= 0:
			raise ValueError("'interval' must be positive.")

		self.root              : str = LocalPathTools.normalize(root)
		self.interval          : float|None = interval
		self.sync_hidden_files : bool = sync_hidden_files
		self.change_detected   : list[ChangeHandler] = []
		self.known_dirs        : set[str] = set()

	def is_hidden(self, path:str) -> bool:
		relpath = os.path.relpath(path, self.root)
		return any(part.startswith(".") and part not in (".", "..") for part in relpath.split(os.sep))

	def forget_dir(self, path:str) -> None:
		prefix = path + os.sep
		self.known_dirs = {d for d in self.known_dirs if d != path and not d.startswith(prefix)}

	def move_dir(self, path:str, new_path:str) -> None:
		prefix = path + os.sep
		moved = {new_path + d[len(path):] for d in self.known_dirs if d == path or d.startswith(prefix)}
		self.forget_dir(path)
		self.known_dirs |= moved | {new_path}

	def _scan_dirs(self) -> None:
		self.known_dirs = set()
		for dirpath, dirnames, filenames in os.walk(self.root):
			for name in dirnames:
				self.known_dirs.add(os.path.join(dirpath, name))

	async def start(self, cancel:asyncio.Event) -> Result:
		'''Raise change events to `change_detected` until `cancel` is set. Returns a cancelled `Result`, or an error if the observer could not run.'''

		if not os.path.isdir(self.root):
			return Result.error(f"Not a directory: {self.root}")
		await asyncio.to_thread(self._scan_dirs)

		loop     = asyncio.get_running_loop()
		events   : asyncio.Queue[FileSystemEvent] = asyncio.Queue()
		observer = PollingObserver(timeout=self.interval) if self.interval else Observer()
		try:
			observer.schedule(_EventBridge(self, loop, events), self.root, recursive=True)
			observer.start()
		except OSError as e:
			logger.error(f"Cannot watch {self.root}")
			return Result.error(_exc_summary(e))
		logger.debug(f"Watching: {self.root}")

		cancelled = asyncio.create_task(cancel.wait())
		getter    : asyncio.Task[FileSystemEvent]|None = None
		try:
			while not cancel.is_set():
				if getter is None:
					getter = asyncio.create_task(events.get())
				done, pending = await asyncio.wait({getter, cancelled}, timeout=1, return_when=asyncio.FIRST_COMPLETED)
				if getter in done:
					event, getter = getter.result(), None
					for handler in list(self.change_detected):
						try:
							await handler(event)
						except Exception:
							logger.error("A change handler raised an exception.", exc_info=True)
				elif not done and not observer.is_alive():
					logger.error(f"Stopped watching {self.root}")
					return Result.error(f"The observer of {self.root} stopped unexpectedly.")
		finally:
			cancelled.cancel()
			if getter is not None:
				getter.cancel()
			observer.stop()
			await asyncio.to_thread(observer.join)
		return Result.cancelled()

	def __repr__(self) -> str:
		return f"{type(self).__name__}({self.root!r}, interval={self.interval!r})"
