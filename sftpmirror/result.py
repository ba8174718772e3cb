# Copyright (c) 2025 Joe Walter
# GNU General Public License v3.0

import functools
from typing import Any, Callable, Generic, Iterable, TypeVar

from .log import logger, _exc_summary

T = TypeVar("T")

class Result:
	'''
	Outcome of a file operation or of a synchronization run, used instead of exceptions.

	An operation either succeeded (`is_ok` and no errors) or carries one or more human-readable errors. A cancelled run is a third outcome: it is not a failure, but it is not a completed run either.

	>>> r = Result.ok()
	>>> r.merge(Result.error("a")).merge(Result.ok()).merge(Result.error("b")).errors
	['a', 'b']
	>>> r.is_ok
	False
	>>> Result.cancelled().is_ok, Result.cancelled().is_cancelled
	(True, True)
	'''

	__slots__ = ("_errors", "_cancelled")

	def __init__(self, errors:Iterable[str]|None = None, *, cancelled:bool = False):
		self._errors    : list[str] = list(errors) if errors is not None else []
		self._cancelled : bool = cancelled
		if self._cancelled and self._errors:
			raise ValueError("A cancelled result cannot carry errors.")

	@classmethod
	def ok(cls) -> "Result":
		return cls()

	@classmethod
	def error(cls, message:str) -> "Result":
		return cls([message])

	@classmethod
	def multiple_errors(cls, messages:Iterable[str]) -> "Result":
		return cls(messages)

	@classmethod
	def cancelled(cls) -> "Result":
		return cls(cancelled=True)

	@property
	def is_ok(self) -> bool:
		return not self._errors

	@property
	def is_cancelled(self) -> bool:
		return self._cancelled

	@property
	def errors(self) -> list[str]:
		return list(self._errors)

	def add_error(self, message:str) -> None:
		self._errors.append(message)

	def merge(self, other:"Result") -> "Result":
		'''Append the errors of `other` to this result and return `self`.'''

		self._errors.extend(other._errors)
		return self

	def __repr__(self) -> str:
		if self._cancelled:
			return f"{type(self).__name__}(cancelled)"
		if self.is_ok:
			return f"{type(self).__name__}(ok)"
		return f"{type(self).__name__}(errors={self._errors!r})"

class ValueResult(Result, Generic[T]):
	'''A `Result` that also carries a value when the operation succeeded.'''

	__slots__ = ("value",)

	def __init__(self, value:T|None = None, errors:Iterable[str]|None = None):
		super().__init__(errors)
		self.value : T|None = value

	@classmethod
	def ok_value(cls, value:T) -> "ValueResult[T]":
		return cls(value)

	@classmethod
	def error(cls, message:str) -> "ValueResult[T]":
		return cls(None, [message])

def first_error(*results:Result) -> Result|None:
	'''
	Returns the first result that is not ok, or `None` if all of them are.

	>>> first_error(Result.ok(), Result.error("x"), Result.error("y")).errors
	['x']
	>>> first_error(Result.ok()) is None
	True
	'''

	for result in results:
		if not result.is_ok:
			return result
	return None

def guarded_call(func:Callable[..., Result], *args:Any) -> Result:
	'''Call a capability method. An unexpected exception is converted into an error result instead of crossing the caller's boundary.'''

	try:
		return func(*args)
	except Exception as e:
		logger.debug(f"{getattr(func, '__name__', func)}{args} raised", exc_info=True)
		return Result.error(_exc_summary(e))

def returns_result(*catch:type[BaseException]) -> Callable[[Callable[..., Any]], Callable[..., Result]]:
	'''
	Decorates a file operation so that it returns `Result.ok()` when it completes and an error `Result` when it raises one of the `catch` exceptions (`OSError` if none are given).

	>>> @returns_result()
	... def remove(path):
	...     raise FileNotFoundError(2, "No such file", path)
	>>> remove("/srv/a.txt").errors
	['FileNotFoundError: /srv/a.txt']
	'''

	catch = catch or (OSError,)

	def decorator(func:Callable[..., Any]) -> Callable[..., Result]:
		@functools.wraps(func)
		def wrapper(*args:Any, **kwargs:Any) -> Result:
			try:
				result = func(*args, **kwargs)
			except catch as e:
				logger.debug(f"{func.__name__} failed", exc_info=True)
				return Result.error(_exc_summary(e))
			return Result.ok() if result is None else result
		return wrapper

	return decorator
