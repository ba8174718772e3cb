class IncompatiblePathError(PermissionError):
	'''Indicates a problem converting a path between the local and remote namespaces.'''
	def __init__(self, strerror=None, filename=None):
		super().__init__(1, strerror, filename)

class StateError(RuntimeError):
	'''Indicates the object is in (or would be set to) an invalid state.'''
	pass

class UnsupportedOperationError(RuntimeError):
	'''Indicates the attempted action is not supported by design.'''
	pass
