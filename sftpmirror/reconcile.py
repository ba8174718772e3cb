# Copyright (c) 2025 Joe Walter
# GNU General Public License v3.0

from collections import deque
from typing import Callable, Iterable

from .paths import PathMapper
from .result import Result, ValueResult, first_error, guarded_call
from .types import DirEntry, Location, TransferOperations
from .errors import IncompatiblePathError
from .log import logger, _RecordTag, _exc_summary

SYNC_OP = _RecordTag.SYNC_OP.dict()

class ReconcileResult(Result):
	'''Aggregate outcome of an initial reconciliation. `aborted` is set when the traversal could not proceed (a directory could not be listed or the destination could not be cleared).'''

	__slots__ = ("aborted",)

	def __init__(self, errors:Iterable[str]|None = None, *, aborted:bool = False):
		super().__init__(errors)
		self.aborted : bool = aborted

	@classmethod
	def abort(cls, result:Result) -> "ReconcileResult":
		return cls(result.errors, aborted=True)

class InitialReconciler:
	'''
	Makes the destination root an exact mirror of the source root before live mirroring starts.

	The destination is emptied first, then the source tree is copied breadth-first with whole-file transfers. A failing entry does not stop the traversal: its errors are added to the aggregate result. A directory that cannot be listed ends the reconciliation immediately, since the traversal cannot safely continue.
	'''

	def __init__(
		self,
		source      : Location,
		dest        : Location,
		mirror_path : Callable[[str], str],
		transfer    : Callable[[str, str], Result],
		sync_hidden : bool = False,
	):
		self.source      = source
		self.dest        = dest
		self.mirror_path = mirror_path
		self.transfer    = transfer
		self.sync_hidden = sync_hidden

	@classmethod
	def for_direction(
		cls,
		local_root       : Location,
		remote_root      : Location,
		mapper           : PathMapper,
		transfers        : TransferOperations,
		seed_from_remote : bool,
		sync_hidden      : bool = False,
	) -> "InitialReconciler":
		'''Reconciler copying remote → local (downloads) if `seed_from_remote`, otherwise local → remote (uploads).'''

		if seed_from_remote:
			return cls(remote_root, local_root, mapper.to_local, transfers.download_file, sync_hidden)
		return cls(local_root, remote_root, mapper.to_remote, transfers.upload_file, sync_hidden)

	def _list(self, location:Location, path:str) -> tuple[Result|None, list[DirEntry], list[DirEntry]]:
		info = location.file_system.info
		dir_result : ValueResult[list[DirEntry]] = guarded_call(info.list_dirs, path, self.sync_hidden)
		file_result : ValueResult[list[DirEntry]] = guarded_call(info.list_files, path, self.sync_hidden)
		error = first_error(dir_result, file_result)
		if error is not None:
			return error, [], []
		return None, dir_result.value or [], file_result.value or []

	def reset_dir(self) -> Result:
		'''Delete the immediate files and subdirectories of the destination root.'''

		error, dirs, files = self._list(self.dest, self.dest.path)
		if error is not None:
			logger.error(f"Cannot list destination root: {self.dest.path}")
			return error

		io = self.dest.file_system.io
		result = Result.ok()
		for d in dirs:
			logger.info(f"- {d.path}{self.dest.file_system.path_tools.sep}", extra=SYNC_OP)
			result.merge(guarded_call(io.delete_dir, d.path))
		for f in files:
			logger.info(f"- {f.path}", extra=SYNC_OP)
			result.merge(guarded_call(io.delete_file, f.path))
		return result

	def run(self) -> ReconcileResult:
		logger.debug(f"Reconciling {self.source} -> {self.dest} (hidden={self.sync_hidden})")

		reset = self.reset_dir()
		if not reset.is_ok:
			for error in reset.errors:
				logger.error(error)
			return ReconcileResult.abort(reset)

		dest_tools = self.dest.file_system.path_tools
		dest_io    = self.dest.file_system.io

		result = ReconcileResult()
		queue  : deque[str] = deque([self.source.path])
		while queue:
			current = queue.popleft()

			error, dirs, files = self._list(self.source, current)
			if error is not None:
				logger.error(f"Cannot list directory: {current}")
				for message in error.errors:
					logger.error(message)
				return ReconcileResult.abort(result.merge(error))

			for d in dirs:
				mirrored = self._mirror(d.path, result)
				if mirrored is None:
					continue
				queue.append(d.path)
				logger.info(f"+ {mirrored}{dest_tools.sep}", extra=SYNC_OP)
				entry = guarded_call(dest_io.new_dir_at, dest_tools.parent_dir(mirrored), dest_tools.file_name(mirrored))
				self._log_failure(entry)
				result.merge(entry)

			for f in files:
				mirrored = self._mirror(f.path, result)
				if mirrored is None:
					continue
				logger.info(f"+ {mirrored}", extra=SYNC_OP)
				entry = guarded_call(self.transfer, f.path, mirrored)
				self._log_failure(entry)
				result.merge(entry)

		return result

	def _mirror(self, path:str, result:Result) -> str|None:
		# a name that cannot exist on the destination (e.g. a backslash for Windows) skips the entry
		try:
			return self.mirror_path(path)
		except IncompatiblePathError as e:
			logger.error(_exc_summary(e))
			result.add_error(_exc_summary(e))
			return None

	@staticmethod
	def _log_failure(entry:Result) -> None:
		for message in entry.errors:
			logger.error(message)
