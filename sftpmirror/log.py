import sys
import logging
from enum import Enum

# Summary of logging levels used in this package:
# DEBUG    = useful for finding bugs
# INFO     = operation mirrored, no problems encountered
# WARNING  = problem encountered but the run continued
# ERROR    = problem encountered and the operation failed
# CRITICAL = Exception raised which halted the program entirely

def _exc_summary(e) -> str:
	'''
	Get a one-line summary of an `Exception`.

	>>> _exc_summary(FileNotFoundError(2, "No such file", "/srv/a.txt"))
	'FileNotFoundError: /srv/a.txt'
	>>> _exc_summary(OSError("Socket is closed"))
	'Socket is closed'
	>>> _exc_summary(ValueError())
	'ValueError'
	'''

	error_type = type(e).__name__
	affected_file = getattr(e, "filename", None)
	error_message = getattr(e, "strerror", None)
	if isinstance(e, OSError) and affected_file:
		msg = f"{error_type}: {affected_file}"
	elif error_message:
		msg = f"{error_type}: {error_message}"
	else:
		msg = str(e) or error_type
	return msg

class _RecordTag(Enum):
	HEADER = 1
	FOOTER = 2
	SYNC_OP = 3

	def dict(self):
		return {self.name: True}

class _DebugInfoFilter(logging.Filter):
	'''Logging filter that only allows DEBUG and INFO records to pass.'''
	def filter(self, record):
		return logging.DEBUG <= record.levelno <= logging.INFO

class _NonEmptyFilter(logging.Filter):
	'''Logging filter that only allows non-empty messages.'''
	def filter(self, record):
		return bool(str(record.msg).strip())

def _indent(msg:str, prefix:str) -> str:
	return (prefix + msg.replace("\n", "\n" + prefix)).rstrip(" ")

class _ConsoleFormatter(logging.Formatter):
	BASE_FORMAT = "%(message)s"

	def __init__(self, fmt=BASE_FORMAT, datefmt=None, style="%"):
		super().__init__(fmt, datefmt, style)

	def format(self, record):
		msg = super().format(record)
		extra_indent = "" if getattr(record, _RecordTag.SYNC_OP.name, False) else "  "
		if record.levelno == logging.DEBUG:
			return _indent(msg, "  " + extra_indent)
		return _indent(msg, extra_indent)

class _LogFileFormatter(logging.Formatter):
	BASE_FORMAT = "%(message)s"

	def __init__(self, fmt=BASE_FORMAT, datefmt=None, style="%"):
		super().__init__(fmt, datefmt, style)

	def format(self, record):
		msg = super().format(record)
		if record.levelno == logging.DEBUG:
			msg = _indent(msg, "  ")
		elif record.levelno == logging.WARNING:
			msg = f"WARNING: {msg}"
		elif record.levelno == logging.ERROR:
			msg = f"ERROR: {msg}"
		elif record.levelno == logging.CRITICAL:
			msg = f"*** CRITICAL ***: {msg}"
		return msg

logger = logging.getLogger("sftpmirror")

def setup_logger():
	if not logger.handlers:
		logger.setLevel(logging.INFO)
		handler_stdout = logging.StreamHandler(sys.stdout)
		handler_stderr = logging.StreamHandler(sys.stderr)
		handler_stdout.addFilter(_DebugInfoFilter())
		handler_stdout.setLevel(logging.DEBUG)
		handler_stderr.setLevel(logging.WARNING)
		handler_stdout.setFormatter(_ConsoleFormatter())
		handler_stderr.setFormatter(_ConsoleFormatter())
		logger.addHandler(handler_stdout)
		logger.addHandler(handler_stderr)

def add_file_handler(path, level:int = logging.DEBUG) -> logging.FileHandler:
	'''Attach a log file to the package logger. The caller is responsible for removing and closing the returned handler.'''

	handler = logging.FileHandler(path, encoding="utf-8")
	handler.setLevel(level)
	handler.setFormatter(_LogFileFormatter())
	handler.addFilter(_NonEmptyFilter())
	logger.addHandler(handler)
	return handler

setup_logger()

def set_console_level(level:int) -> None:
	'''Only print records at or above `level` to the console.'''

	for handler in logger.handlers:
		if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
			if handler.stream is sys.stdout:
				handler.setLevel(level)
			else:
				handler.setLevel(max(level, logging.WARNING))
