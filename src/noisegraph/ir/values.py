from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True, slots=True)
class Literal:
	"""An inline parameter value typed directly into a slot.

	Slots of an unresolved operation node carry `Literal(None)`: the value has
	no meaning until the node is committed to a concrete dtype.
	"""

	value: float | int | None

	@property
	def is_reference(self) -> bool:
		return False

	def as_node_index(self) -> int | None:
		return None

	def __repr__(self) -> str:  # pragma: no cover
		return f"Literal({self.value!r})"


@dataclass(frozen=True, slots=True)
class Reference:
	"""A slot fed by the output of another node, named by its graph index."""

	index: int

	@property
	def is_reference(self) -> bool:
		return True

	def as_node_index(self) -> int | None:
		return self.index

	def __repr__(self) -> str:  # pragma: no cover
		return f"Reference({self.index})"


NodeValue = Union[Literal, Reference]
