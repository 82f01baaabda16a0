from __future__ import annotations


class IRValidationError(ValueError):
	"""A graph handed to the core breaks one of its preconditions.

	Dangling references, references to a node of the wrong kind, and asking
	for an expression or a scalar from a node that cannot produce one all end
	up here. These are bugs in the editing layer, so nothing in the core
	catches this error.
	"""
