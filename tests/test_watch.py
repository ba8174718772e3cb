# Copyright (c) 2025 Joe Walter
# GNU General Public License v3.0

import os
import asyncio
import tempfile
import unittest

from watchdog.events import DirCreatedEvent, DirModifiedEvent, DirMovedEvent, FileDeletedEvent, FileMovedEvent

from sftpmirror.watch import DirectoryWatcher, _EventBridge
from sftpmirror.types import FileSystemEvent, FileSystemEventType as T, Location
from sftpmirror.errors import UnsupportedOperationError
from .helpers import *

class TestDirectoryWatcher(unittest.TestCase):

	def test_remote_root_is_rejected(self):
		with self.assertRaises(UnsupportedOperationError):
			DirectoryWatcher(Location(MemoryFileSystem(), "/"))

	def test_bad_interval(self):
		with self.assertRaises(ValueError):
			DirectoryWatcher(".", interval=0)

	def test_is_hidden(self):
		root = os.path.abspath("site")
		watcher = DirectoryWatcher(root)
		self.assertTrue(watcher.is_hidden(os.path.join(root, ".git", "config")))
		self.assertTrue(watcher.is_hidden(os.path.join(root, "a", ".b")))
		self.assertFalse(watcher.is_hidden(os.path.join(root, "a", "b.txt")))

	def test_known_dirs(self):
		root = os.path.abspath("site")
		watcher = DirectoryWatcher(root)
		a, b = os.path.join(root, "a"), os.path.join(root, "a", "b")
		watcher.known_dirs = {a, b, os.path.join(root, "ab")}
		watcher.move_dir(a, os.path.join(root, "c"))
		self.assertEqual(watcher.known_dirs, {os.path.join(root, "c"), os.path.join(root, "c", "b"), os.path.join(root, "ab")})
		watcher.forget_dir(os.path.join(root, "c"))
		self.assertEqual(watcher.known_dirs, {os.path.join(root, "ab")})

class TestDirectoryWatcherEvents(unittest.IsolatedAsyncioTestCase):

	async def asyncSetUp(self):
		self.temp = tempfile.TemporaryDirectory()
		self.root = self.temp.name

	async def asyncTearDown(self):
		self.temp.cleanup()

	async def test_created_file(self):
		watcher = DirectoryWatcher(self.root, interval=0.1)
		seen = []
		created = asyncio.Event()
		path = os.path.join(watcher.root, "a.txt")
		async def handler(event):
			seen.append(event)
			if event.event_type is T.CREATED and event.original_path == path:
				created.set()
		watcher.change_detected.append(handler)

		cancel = asyncio.Event()
		task = asyncio.create_task(watcher.start(cancel))
		# let the polling observer take its first snapshot
		await asyncio.sleep(0.5)
		write_file(path)
		write_file(os.path.join(watcher.root, ".hidden"))
		try:
			await asyncio.wait_for(created.wait(), 5)
		finally:
			cancel.set()
			result = await asyncio.wait_for(task, 5)
		self.assertTrue(result.is_cancelled)
		self.assertFalse(any(e.original_path.endswith(".hidden") for e in seen))

	async def test_missing_root(self):
		watcher = DirectoryWatcher(os.path.join(self.root, "missing"))
		result = await watcher.start(asyncio.Event())
		self.assertFalse(result.is_ok)

class TestEventBridge(unittest.IsolatedAsyncioTestCase):

	async def asyncSetUp(self):
		self.temp    = tempfile.TemporaryDirectory()
		self.watcher = DirectoryWatcher(self.temp.name)
		self.events  = asyncio.Queue()
		self.bridge  = _EventBridge(self.watcher, asyncio.get_running_loop(), self.events)

	async def asyncTearDown(self):
		self.temp.cleanup()

	def path(self, *parts:str) -> str:
		return os.path.join(self.watcher.root, *parts)

	async def posted(self) -> list[FileSystemEvent]:
		# let the callbacks scheduled by the bridge run
		await asyncio.sleep(0)
		await asyncio.sleep(0)
		found = []
		while not self.events.empty():
			found.append(self.events.get_nowait())
		return found

	async def test_move(self):
		self.bridge.on_moved(FileMovedEvent(self.path("a.txt"), self.path("b.txt")))
		self.assertEqual(await self.posted(), [FileSystemEvent(self.path("a.txt"), False, T.MOVED, self.path("b.txt"))])

	async def test_move_out_of_hidden_file_is_a_create(self):
		self.bridge.on_moved(FileMovedEvent(self.path(".doc.txt.tmp"), self.path("doc.txt")))
		self.assertEqual(await self.posted(), [FileSystemEvent(self.path("doc.txt"), False, T.CREATED)])

	async def test_move_into_hidden_file_is_a_delete(self):
		self.bridge.on_moved(FileMovedEvent(self.path("old.txt"), self.path(".old.txt")))
		self.assertEqual(await self.posted(), [FileSystemEvent(self.path("old.txt"), False, T.DELETED)])

	async def test_move_between_hidden_files_is_dropped(self):
		self.bridge.on_moved(FileMovedEvent(self.path(".a"), self.path(".b")))
		self.assertEqual(await self.posted(), [])

	async def test_hidden_move_is_kept_when_syncing_hidden_files(self):
		self.watcher.sync_hidden_files = True
		self.bridge.on_moved(FileMovedEvent(self.path(".doc.txt.tmp"), self.path("doc.txt")))
		self.assertEqual(await self.posted(), [FileSystemEvent(self.path(".doc.txt.tmp"), False, T.MOVED, self.path("doc.txt"))])

	async def test_move_out_of_hidden_dir_creates_its_contents(self):
		write_file(self.path("site", "a.txt"))
		write_file(self.path("site", ".hid"))
		write_file(self.path("site", "sub", "b.txt"))
		write_file(self.path("site", ".cache", "c.txt"))
		self.bridge.on_moved(DirMovedEvent(self.path(".staging"), self.path("site")))
		self.assertEqual(await self.posted(), [
			FileSystemEvent(self.path("site"), True, T.CREATED),
			FileSystemEvent(self.path("site", "a.txt"), False, T.CREATED),
			FileSystemEvent(self.path("site", "sub"), True, T.CREATED),
			FileSystemEvent(self.path("site", "sub", "b.txt"), False, T.CREATED),
		])
		self.assertIn(self.path("site", "sub"), self.watcher.known_dirs)

	async def test_deleted_known_dir_is_a_dir(self):
		self.watcher.known_dirs = {self.path("x"), self.path("x", "y")}
		self.bridge.on_deleted(FileDeletedEvent(self.path("x")))
		self.assertEqual(await self.posted(), [FileSystemEvent(self.path("x"), True, T.DELETED)])
		self.assertEqual(self.watcher.known_dirs, set())

	async def test_moved_known_dir_is_a_dir(self):
		self.watcher.known_dirs = {self.path("x")}
		self.bridge.on_moved(FileMovedEvent(self.path("x"), self.path("z")))
		self.assertEqual(await self.posted(), [FileSystemEvent(self.path("x"), True, T.MOVED, self.path("z"))])
		self.assertEqual(self.watcher.known_dirs, {self.path("z")})

	async def test_dir_events(self):
		self.bridge.on_created(DirCreatedEvent(self.path("d")))
		self.bridge.on_modified(DirModifiedEvent(self.path("d")))
		self.assertEqual(await self.posted(), [FileSystemEvent(self.path("d"), True, T.CREATED)])
		self.assertIn(self.path("d"), self.watcher.known_dirs)
