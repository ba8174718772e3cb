# Copyright (c) 2025 Joe Walter
# GNU General Public License v3.0

import os
import re

from .errors import IncompatiblePathError

class LocalPathTools:
	'''Path manipulation for the local filesystem, following the conventions of the running platform (drive letters and backslashes on Windows).'''

	sep     : str = os.sep
	altsep  : str = os.altsep or os.sep
	_seps   : str = sep + altsep if altsep != sep else sep
	_dup_re = re.compile("[" + re.escape(_seps) + "]+")

	@classmethod
	def normalize(cls, path:str) -> str:
		'''Absolute path with primary separators only, no repeated separators and no trailing separator. Separators at the root of a filesystem are kept.'''

		if not path or path.isspace():
			return path
		drive, rest = os.path.splitdrive(os.path.abspath(path))
		rest = cls._dup_re.sub(lambda m: cls.sep, rest)
		if len(rest) > 1:
			rest = rest.rstrip(cls._seps)
		return drive + rest

	@classmethod
	def is_root(cls, path:str) -> bool:
		drive, rest = os.path.splitdrive(path)
		return rest != "" and rest.strip(cls._seps) == ""

	@classmethod
	def combine(cls, base:str, suffix:str) -> str:
		'''Joins `base` and `suffix` with exactly one separator. An empty `suffix` yields `base` itself.'''

		suffix = suffix.strip(cls._seps)
		if not suffix:
			return base if cls.is_root(base) else base.rstrip(cls._seps)
		return base.rstrip(cls._seps) + cls.sep + suffix

	@classmethod
	def parent_dir(cls, path:str) -> str:
		'''Parent directory of `path`, ignoring trailing separators. A root is its own parent.'''

		trimmed = path if cls.is_root(path) else path.rstrip(cls._seps)
		parent = os.path.dirname(trimmed)
		return parent or path

	@classmethod
	def file_name(cls, path:str) -> str:
		'''Last component of `path`, ignoring trailing separators.'''

		return os.path.basename(path.rstrip(cls._seps))

	@classmethod
	def names_equal(cls, a:str|None, b:str|None) -> bool:
		return a is not None and b is not None and os.path.normcase(a) == os.path.normcase(b)

	@classmethod
	def paths_equal(cls, a:str|None, b:str|None) -> bool:
		return a is not None and b is not None and os.path.normcase(cls.normalize(a)) == os.path.normcase(cls.normalize(b))

	@classmethod
	def is_relative_to(cls, path:str, root:str) -> bool:
		'''Whether the normalized `path` is `root` or lies under the normalized `root`.'''

		path = os.path.normcase(path)
		root = os.path.normcase(root)
		if path == root:
			return True
		return path.startswith(root.rstrip(cls._seps) + cls.sep)

class RemotePathTools:
	'''
	Path manipulation for the remote (SFTP) namespace: a single root and forward slashes only.

	>>> RemotePathTools.normalize("srv//data/")
	'/srv/data'
	>>> RemotePathTools.normalize("")
	'/'
	>>> RemotePathTools.combine("/srv/", "/a//b/")
	'/srv/a/b'
	>>> RemotePathTools.combine("/", "")
	'/'
	>>> RemotePathTools.parent_dir("/srv/a"), RemotePathTools.parent_dir("/srv"), RemotePathTools.parent_dir("/")
	('/srv', '/', '')
	>>> RemotePathTools.file_name("/srv/a.txt/")
	'a.txt'
	'''

	sep  : str = "/"
	root : str = "/"

	@classmethod
	def _parts(cls, path:str) -> list[str]:
		return [part for part in path.split(cls.sep) if part]

	@classmethod
	def normalize(cls, path:str) -> str:
		return cls.root + cls.sep.join(cls._parts(path))

	@classmethod
	def is_root(cls, path:str) -> bool:
		return path.startswith(cls.sep) and not cls._parts(path)

	@classmethod
	def combine(cls, base:str, suffix:str) -> str:
		'''Joins `base` and `suffix` with exactly one separator. The leading separator of `base` is kept.'''

		joined = cls.sep.join(cls._parts(base) + cls._parts(suffix))
		if base.startswith(cls.sep):
			return cls.root + joined
		return joined

	@classmethod
	def parent_dir(cls, path:str) -> str:
		'''Parent directory of `path`. Returns an empty string if `path` has no parent.'''

		parts = cls._parts(path)
		if not parts:
			return ""
		if len(parts) == 1:
			return cls.root if path.startswith(cls.sep) else ""
		return cls.combine(cls.root if path.startswith(cls.sep) else "", cls.sep.join(parts[:-1]))

	@classmethod
	def file_name(cls, path:str) -> str:
		parts = cls._parts(path)
		return parts[-1] if parts else ""

	@classmethod
	def names_equal(cls, a:str|None, b:str|None) -> bool:
		return a is not None and b is not None and a == b

	@classmethod
	def paths_equal(cls, a:str|None, b:str|None) -> bool:
		return a is not None and b is not None and cls.normalize(a) == cls.normalize(b)

	@classmethod
	def is_relative_to(cls, path:str, root:str) -> bool:
		'''
		Whether the normalized `path` is `root` or lies under the normalized `root`.

		>>> RemotePathTools.is_relative_to("/srv/ab", "/srv/a")
		False
		>>> RemotePathTools.is_relative_to("/srv/a/b", "/srv/a"), RemotePathTools.is_relative_to("/x", "/")
		(True, True)
		'''

		if path == root:
			return True
		return path.startswith(root.rstrip(cls.sep) + cls.sep)

def _convert_sep(path:str, src_sep:str, dst_sep:str) -> str:
	r'''
	Translates `src_sep` (path separators) in `path` to `dst_sep`.

	>>> _convert_sep("\\a/b", "/", "\\")
	Traceback (most recent call last):
	...
	sftpmirror.errors.IncompatiblePathError: [Errno 1] Incompatible path for this system: '\\a/b'
	>>> _convert_sep("a/b", "/", "\\")
	'a\\b'
	>>> _convert_sep("a\\b", "\\", "/")
	'a/b'
	>>> _convert_sep("a\\b", "/", "/")
	'a\\b'
	'''

	if src_sep == dst_sep:
		return path
	elif src_sep == "\\":
		return path.replace("\\", "/")
	else:
		if "\\" in path:
			raise IncompatiblePathError("Incompatible path for this system", str(path))
		else:
			return path.replace("/", "\\")

class PathMapper:
	'''
	Translates paths between a local root and the remote root mirroring it.

	Every path under the local root corresponds to exactly one path under the remote root with the same relative components. Paths outside of the mapped roots are a programming error and raise `IncompatiblePathError`.
	'''

	def __init__(self, local_root:str, remote_root:str):
		self.local_root  : str = LocalPathTools.normalize(local_root)
		self.remote_root : str = RemotePathTools.normalize(remote_root)

	def local_relpath(self, local_path:str) -> str:
		'''Relative suffix of `local_path` under the local root, using local separators. Empty for the root itself.'''

		local_path = LocalPathTools.normalize(local_path)
		if not LocalPathTools.is_relative_to(local_path, self.local_root):
			raise IncompatiblePathError("Path is outside of the local root", local_path)
		return local_path[len(self.local_root):].lstrip(LocalPathTools._seps)

	def remote_relpath(self, remote_path:str) -> str:
		'''Relative suffix of `remote_path` under the remote root. Empty for the root itself.'''

		remote_path = RemotePathTools.normalize(remote_path)
		if not RemotePathTools.is_relative_to(remote_path, self.remote_root):
			raise IncompatiblePathError("Path is outside of the remote root", remote_path)
		return remote_path[len(self.remote_root):].lstrip(RemotePathTools.sep)

	def to_remote(self, local_path:str) -> str:
		relative = _convert_sep(self.local_relpath(local_path), LocalPathTools.sep, RemotePathTools.sep)
		return RemotePathTools.combine(self.remote_root, relative)

	def to_local(self, remote_path:str) -> str:
		relative = _convert_sep(self.remote_relpath(remote_path), RemotePathTools.sep, LocalPathTools.sep)
		return LocalPathTools.combine(self.local_root, relative)

	def __repr__(self) -> str:
		return f"{type(self).__name__}({self.local_root!r}, {self.remote_root!r})"
