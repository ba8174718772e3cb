# Copyright (c) 2025 Joe Walter
# GNU General Public License v3.0

import asyncio
from enum import Enum
from collections import Counter
from typing import Any, Callable, Counter as CounterType, Iterator, cast

from .config import SyncConfig
from .paths import PathMapper, RemotePathTools
from .reconcile import InitialReconciler, ReconcileResult
from .result import Result, guarded_call
from .types import ChangeWatcher, FileSystemEvent, FileSystemEventType, Location, RemoteFileOperations
from .errors import IncompatiblePathError, StateError
from .log import logger, _RecordTag, _exc_summary

SyncEventHandler = Callable[[FileSystemEvent, str, Result], None]

_Step = tuple[Callable[..., Result], tuple[Any, ...]]

HEADER  = _RecordTag.HEADER.dict()
SYNC_OP = _RecordTag.SYNC_OP.dict()

class SyncStats:
	'''Counts of mirrored live events, by event type.'''

	def __init__(self):
		self.success_counts : CounterType[FileSystemEventType] = Counter()
		self.failure_counts : CounterType[FileSystemEventType] = Counter()

	def tally(self, event_type:FileSystemEventType, result:Result) -> None:
		if result.is_ok:
			self.success_counts[event_type] += 1
		else:
			self.failure_counts[event_type] += 1

	@property
	def success_count(self) -> int:
		return sum(self.success_counts.values())

	@property
	def failure_count(self) -> int:
		return sum(self.failure_counts.values())

	def summary(self) -> Iterator[str]:
		'''
		Lines summarizing the counts, aligned on the colon.

		>>> stats = SyncStats()
		>>> stats.tally(FileSystemEventType.CREATED, Result.ok())
		>>> stats.tally(FileSystemEventType.DELETED, Result.error("x"))
		>>> for line in stats.summary(): print(line)
		Create Success: 1
		Update Success: 0
		Delete Success: 0 | Failed: 1
		  Move Success: 0
		  Copy Success: 0
		'''

		keys = {
			"Create": FileSystemEventType.CREATED,
			"Update": FileSystemEventType.UPDATED,
			"Delete": FileSystemEventType.DELETED,
			"Move":   FileSystemEventType.MOVED,
			"Copy":   FileSystemEventType.COPIED,
		}
		lines = []
		for key, event_type in keys.items():
			success = self.success_counts[event_type]
			failure = self.failure_counts[event_type]
			lines.append(f"{key} Success: {success}" + (f" | Failed: {failure}" if failure else ""))
		key_length = max(line.find(":") for line in lines)
		for line in lines:
			yield f"{line:>{len(line) + key_length - line.find(':')}}"

class Synchronizer:
	'''
	Mirrors a local directory onto a remote directory in real time.

	`start()` first makes one root an exact copy of the other (local → remote by default, remote → local with `seed_from_remote`). It then replays every change raised by the watcher of the local root against the remote filesystem until `stop()` is called. Changes are queued by the watcher callback and handled one at a time, in the order they were raised. Every handled change is reported to `sync_event_handlers` with the remote path it was mirrored to and the `Result` of the remote operation.

	Example Console Output
		     /home/user/site
		  -> /srv/www/site
		  ----------------
		- /srv/www/site/old/
		+ /srv/www/site/css/
		+ /srv/www/site/index.html
		+ /srv/www/site/css/main.css
		U /srv/www/site/index.html
		R /srv/www/site/css/main.css -> /srv/www/site/css/site.css
	'''

	ALREADY_RUNNING : str = "Synchronizer is already running."

	class _SyncState(Enum):
		IDLE         = 0
		INITIALIZING = 1
		WATCHING     = 2
		STOPPING     = 3

	def __init__(
		self,
		watcher     : ChangeWatcher,
		local_root  : Location,
		remote_root : Location,
		remote_io   : RemoteFileOperations,
	):
		self.watcher     : ChangeWatcher = watcher
		self.local_root  : Location = local_root
		self.remote_root : Location = remote_root
		self.remote_io   : RemoteFileOperations = remote_io
		self.mapper      : PathMapper = PathMapper(local_root.path, remote_root.path)

		self.sync_event_handlers : list[SyncEventHandler] = []
		self.stats               : SyncStats = SyncStats()
		self.last_reconcile      : ReconcileResult|None = None

		self._state          : Synchronizer._SyncState = Synchronizer._SyncState.IDLE
		self._closed         : bool = False
		self._stop_requested : bool = False
		self._cancel         : asyncio.Event|None = None
		self._stopped        : asyncio.Event|None = None
		self._queue          : asyncio.Queue[FileSystemEvent]|None = None
		self._watcher_task   : asyncio.Task[Result]|None = None
		self._consumer_task  : asyncio.Task[None]|None = None

		self.watcher.change_detected.append(self._on_fs_event)

	@property
	def state(self) -> "Synchronizer._SyncState":
		return self._state

	@property
	def is_running(self) -> bool:
		return self._state is not Synchronizer._SyncState.IDLE

	# -------------------------------------------------------------------------
	# Lifecycle

	async def start(self, seed_from_remote:bool = False, config:SyncConfig|None = None) -> Result:
		'''
		Reconcile both roots, then mirror local changes until stopped.

		Returns when the run ends: a cancelled `Result` after `stop()`, or the errors that ended it (a directory that could not be listed during reconciliation, or a watcher failure). Calling `start()` on a running instance returns an error without doing any work.
		'''

		if self._closed:
			raise StateError("Synchronizer has been closed.")
		if self._state is not Synchronizer._SyncState.IDLE:
			logger.warning(Synchronizer.ALREADY_RUNNING)
			return Result.error(Synchronizer.ALREADY_RUNNING)

		config = config if config is not None else SyncConfig()
		self._state          = Synchronizer._SyncState.INITIALIZING
		self._stop_requested = False
		self._stopped        = asyncio.Event()
		stopped              = self._stopped
		try:
			return await self._run(seed_from_remote, config)
		finally:
			await self._teardown()
			self._state = Synchronizer._SyncState.IDLE
			stopped.set()

	async def stop(self) -> None:
		'''Request the end of the current run and wait until it is torn down. Does nothing if the instance is not running.'''

		if self._state is Synchronizer._SyncState.IDLE or self._stopped is None:
			return
		self._stop_requested = True
		if self._state is Synchronizer._SyncState.WATCHING:
			self._state = Synchronizer._SyncState.STOPPING
		if self._cancel is not None:
			self._cancel.set()
		await self._stopped.wait()

	async def aclose(self) -> None:
		'''Stop the current run and unsubscribe from the watcher.'''

		await self.stop()
		if self._on_fs_event in self.watcher.change_detected:
			self.watcher.change_detected.remove(self._on_fs_event)
		self._closed = True

	async def __aenter__(self) -> "Synchronizer":
		return self

	async def __aexit__(self, exc_type, exc_value, traceback) -> None:
		await self.aclose()

	async def _run(self, seed_from_remote:bool, config:SyncConfig) -> Result:
		self.watcher.sync_hidden_files = config.sync_hidden

		source, dest = (self.remote_root, self.local_root) if seed_from_remote else (self.local_root, self.remote_root)
		width = max(len(str(source.path)), len(str(dest.path)), 7) + 3
		logger.info("   " + str(source.path), extra=HEADER)
		logger.info("-> " + str(dest.path), extra=HEADER)
		logger.info("-" * width, extra=HEADER)

		reconciler = InitialReconciler.for_direction(
			self.local_root,
			self.remote_root,
			self.mapper,
			self.remote_io,
			seed_from_remote,
			config.sync_hidden,
		)
		reconciled = await asyncio.to_thread(reconciler.run)
		self.last_reconcile = reconciled

		if reconciled.aborted:
			logger.error("Initial reconciliation aborted.")
			return Result(reconciled.errors)
		if not reconciled.is_ok:
			if not config.proceed_on_errors:
				logger.error(f"Initial reconciliation failed for {len(reconciled.errors)} entries.")
				return Result(reconciled.errors)
			logger.warning(f"Initial reconciliation failed for {len(reconciled.errors)} entries. Continuing.")
		if self._stop_requested:
			return Result.cancelled()

		self._cancel        = asyncio.Event()
		self._queue         = asyncio.Queue(maxsize=config.queue_size)
		self._consumer_task = asyncio.create_task(self._consume(self._queue, self._cancel))
		self._watcher_task  = asyncio.create_task(self.watcher.start(self._cancel))
		self._state         = Synchronizer._SyncState.WATCHING
		logger.debug("Watching for changes.")

		try:
			result = await self._watcher_task
		except asyncio.CancelledError:
			raise
		except Exception as e:
			logger.critical("The watcher stopped unexpectedly.", exc_info=True)
			return Result.error(_exc_summary(e))

		if not self._cancel.is_set():
			# the watcher ended by itself: mirror what it raised before returning
			await self._queue.join()
		if result.is_cancelled:
			logger.debug("Watcher cancelled.")
		else:
			for message in result.errors:
				logger.error(message)
		return result

	async def _teardown(self) -> None:
		if self._cancel is not None:
			self._cancel.set()
		if self._watcher_task is not None:
			if not self._watcher_task.done():
				await asyncio.gather(self._watcher_task, return_exceptions=True)
		if self._consumer_task is not None:
			# events still queued are abandoned
			self._consumer_task.cancel()
			await asyncio.gather(self._consumer_task, return_exceptions=True)
		self._cancel        = None
		self._queue         = None
		self._watcher_task  = None
		self._consumer_task = None

	# -------------------------------------------------------------------------
	# Live mirroring

	async def _on_fs_event(self, event:FileSystemEvent) -> None:
		cancel = self._cancel
		queue  = self._queue
		if cancel is None or queue is None or cancel.is_set():
			logger.debug(f"Dropped event while not watching: {event}")
			return
		await queue.put(event)

	async def _consume(self, queue:"asyncio.Queue[FileSystemEvent]", cancel:asyncio.Event) -> None:
		while True:
			event = await queue.get()
			try:
				if cancel.is_set():
					continue
				remote_path, result = await self.handle_event(event)
				if cancel.is_set():
					continue
				self._report(event, remote_path, result)
			finally:
				queue.task_done()

	async def handle_event(self, event:FileSystemEvent) -> tuple[str, Result]:
		'''Mirror one change on the remote filesystem. Returns the translated remote path and the outcome. Never raises for a failed or malformed change.'''

		try:
			remote_path = self.mapper.to_remote(event.original_path)
		except IncompatiblePathError as e:
			return event.original_path, Result.error(_exc_summary(e))

		try:
			plan = self._plan(event, remote_path)
		except IncompatiblePathError as e:
			return remote_path, Result.error(_exc_summary(e))
		if isinstance(plan, Result):
			return remote_path, plan

		for index, (func, args) in enumerate(plan):
			result = await asyncio.to_thread(guarded_call, func, *args)
			if not result.is_ok:
				if index > 0:
					# the entry was relocated under its old name
					verb = "Moved" if event.event_type is FileSystemEventType.MOVED else "Copied"
					result = Result.error(f"{verb} to '{args[0]}' but not renamed to '{args[1]}': " + "; ".join(result.errors))
				return remote_path, result
		return remote_path, Result.ok()

	def _plan(self, event:FileSystemEvent, remote_path:str) -> list[_Step]|Result:
		'''The remote calls mirroring `event`, or an error `Result` if the event cannot be mirrored.'''

		io   = self.remote_io
		kind = event.event_type
		if not isinstance(kind, FileSystemEventType):
			return Result.error("Unknown event type.")
		if not event.is_well_formed:
			if event.new_path is None:
				return Result.error(f"Missing new path on {kind.name.title()} event for '{event.original_path}'.")
			return Result.error(f"Unexpected new path on {kind.name.title()} event for '{event.original_path}'.")

		if kind is FileSystemEventType.CREATED or kind is FileSystemEventType.UPDATED:
			if not event.is_directory:
				return [(io.upload_file, (event.original_path, remote_path))]
			if kind is FileSystemEventType.CREATED:
				return [(io.new_dir_at, (RemotePathTools.parent_dir(remote_path), RemotePathTools.file_name(remote_path)))]
			# directory metadata is not mirrored
			return []

		if kind is FileSystemEventType.DELETED:
			return [(io.delete_dir if event.is_directory else io.delete_file, (remote_path,))]

		new_remote_path = self.mapper.to_remote(cast(str, event.new_path))
		return self._plan_relocation(event, remote_path, new_remote_path)

	def _plan_relocation(self, event:FileSystemEvent, remote_path:str, new_remote_path:str) -> list[_Step]:
		io = self.remote_io
		if event.event_type is FileSystemEventType.MOVED:
			relocate = io.move_dir_to    if event.is_directory else io.move_file_to
			in_place = io.rename_dir_at  if event.is_directory else io.rename_file_at
		else:
			relocate = io.copy_dir_to    if event.is_directory else io.copy_file_to
			in_place = io.duplicate_dir  if event.is_directory else io.duplicate_file
		rename = io.rename_dir_at if event.is_directory else io.rename_file_at

		old_parent = RemotePathTools.parent_dir(remote_path)
		old_name   = RemotePathTools.file_name(remote_path)
		new_parent = RemotePathTools.parent_dir(new_remote_path)
		new_name   = RemotePathTools.file_name(new_remote_path)

		if RemotePathTools.paths_equal(old_parent, new_parent):
			return [(in_place, (remote_path, new_name))]
		steps : list[_Step] = [(relocate, (remote_path, new_parent))]
		if not RemotePathTools.names_equal(old_name, new_name):
			steps.append((rename, (RemotePathTools.combine(new_parent, old_name), new_name)))
		return steps

	def _report(self, event:FileSystemEvent, remote_path:str, result:Result) -> None:
		self.stats.tally(event.event_type, result)
		logger.info(self._summary(event, remote_path), extra=SYNC_OP)
		for message in result.errors:
			logger.error(message)

		for handler in list(self.sync_event_handlers):
			try:
				handler(event, remote_path, result)
			except Exception:
				logger.error("A sync event handler raised an exception.", exc_info=True)

	def _summary(self, event:FileSystemEvent, remote_path:str) -> str:
		symbols = {
			FileSystemEventType.CREATED: "+",
			FileSystemEventType.UPDATED: "U",
			FileSystemEventType.DELETED: "-",
			FileSystemEventType.MOVED:   "R",
			FileSystemEventType.COPIED:  "C",
		}
		symbol = symbols.get(event.event_type, "?")
		suffix = RemotePathTools.sep if event.is_directory else ""
		summary = f"{symbol} {remote_path}{suffix}"
		if event.new_path is not None:
			try:
				summary += f" -> {self.mapper.to_remote(event.new_path)}{suffix}"
			except IncompatiblePathError:
				summary += f" -> {event.new_path}"
		return summary
