# Copyright (c) 2025 Joe Walter
# GNU General Public License v3.0

from dataclasses import dataclass

@dataclass(frozen=True)
class SyncConfig:
	'''
	Settings read at the start of a synchronization run.

	Args
		sync_hidden       (bool) : Whether hidden files and directories are reconciled and watched. (Defaults to `False`.)
		proceed_on_errors (bool) : Whether live mirroring starts even though some entries failed during the initial reconciliation. A failure to list a directory always ends the run. (Defaults to `True`.)
		queue_size         (int) : Maximum number of change events buffered between the watcher and the event consumer. The watcher waits while the buffer is full. (Defaults to `256`.)
	'''

	sync_hidden       : bool = False
	proceed_on_errors : bool = True
	queue_size        : int  = 256

	def __post_init__(self):
		if not isinstance(self.sync_hidden, bool):
			raise TypeError(f"Bad type for 'sync_hidden' (expected bool): {self.sync_hidden}")
		if not isinstance(self.proceed_on_errors, bool):
			raise TypeError(f"Bad type for 'proceed_on_errors' (expected bool): {self.proceed_on_errors}")
		if not isinstance(self.queue_size, int) or isinstance(self.queue_size, bool):
			raise TypeError(f"Bad type for 'queue_size' (expected int): {self.queue_size}")
		if self.queue_size < 1:
			raise ValueError("'queue_size' must be positive.")
