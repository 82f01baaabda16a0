from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, NamedTuple

from .errors import IRValidationError
from .nodes import Node


class Wire(NamedTuple):
	"""One edge: the output pin of `out_node` feeds slot `in_slot` of `in_node`."""

	out_node: int
	in_node: int
	in_slot: str


@dataclass
class NodeGraph:
	"""Node storage by stable index plus pin connectivity.

	Design choices (on purpose):
	- Indices are handed out in creation order and never reused, so a removed
	  node never aliases a new one.
	- Wires mirror what the node slots reference. Keeping both in sync is the
	  editing layer's job; the core only reads wires to find consumers.
	- The store is purely structural. It never retypes or rewires anything on
	  its own.
	"""

	name: str = "graph"
	nodes: dict[int, Node] = field(default_factory=dict)
	_users: dict[int, list[Wire]] = field(default_factory=dict, repr=False)
	_next_index: int = field(default=0, repr=False)

	def add(self, node: Node) -> int:
		index = self._next_index
		self._next_index += 1
		self.nodes[index] = node
		return index

	def node(self, index: int) -> Node:
		try:
			return self.nodes[index]
		except KeyError:
			raise IRValidationError(f"dangling reference to node #{index}") from None

	def replace(self, index: int, node: Node) -> Node:
		"""Store `node` at an existing index and return the node it replaced."""
		old = self.node(index)
		self.nodes[index] = node
		return old

	def remove(self, index: int) -> Node:
		"""Remove a node and every wire touching it."""
		node = self.node(index)
		for wire in list(self.wires):
			if index in (wire.out_node, wire.in_node):
				self.disconnect(*wire)
		del self.nodes[index]
		self._users.pop(index, None)
		return node

	def connect(self, out_node: int, in_node: int, in_slot: str = "source") -> Wire:
		self.node(out_node)
		self.node(in_node)
		wire = Wire(out_node, in_node, in_slot)
		users = self._users.setdefault(out_node, [])
		if wire not in users:
			users.append(wire)
		return wire

	def disconnect(self, out_node: int, in_node: int, in_slot: str = "source") -> None:
		wire = Wire(out_node, in_node, in_slot)
		users = self._users.get(out_node, [])
		if wire in users:
			users.remove(wire)

	def consumers(self, index: int) -> list[int]:
		"""Nodes reading the output of node `index`, in wiring order, without repeats."""
		return list(dict.fromkeys(w.in_node for w in self._users.get(index, ())))

	@property
	def wires(self) -> list[Wire]:
		return [w for users in self._users.values() for w in users]

	def __contains__(self, index: object) -> bool:
		return index in self.nodes

	def __len__(self) -> int:
		return len(self.nodes)

	def __iter__(self) -> Iterator[tuple[int, Node]]:
		return iter(self.nodes.items())

	def check_references(self) -> None:
		"""Raise IRValidationError if any node references a missing index."""
		for index, node in self.nodes.items():
			for ref in node.references():
				if ref not in self.nodes:
					raise IRValidationError(f"node #{index} ({node.kind}) references missing node #{ref}")

	def summary(self) -> str:
		lines: list[str] = [f"NodeGraph(name={self.name!r}, nodes={len(self.nodes)}, wires={len(self.wires)})"]
		for index, node in self.nodes.items():
			refs = ", ".join(f"#{r}" for r in node.references())
			users = ", ".join(f"#{u}" for u in self.consumers(index))
			dtype = getattr(node, "dtype", None)
			kind = f"{node.kind}[{dtype.name}]" if dtype is not None else node.kind
			lines.append(f"- #{index}: {kind}({refs}) -> [{users}]")
		return "\n".join(lines)
