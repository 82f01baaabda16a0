from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .errors import IRValidationError


@dataclass(frozen=True, slots=True)
class DType:
	"""Scalar type carried by constant and operation nodes.

	Only two concrete types exist: float64 for noise parameters such as
	frequency, and uint32 for seeds and octave counts. `unresolved` is the
	state of an operation node nothing has pinned yet.
	"""

	name: str
	itemsize: int
	scalar: type | None = None

	@property
	def is_concrete(self) -> bool:
		return self.scalar is not None

	@property
	def default(self) -> float | int | None:
		if self.scalar is None:
			return None
		return self.coerce(0)

	@property
	def max(self) -> float | int:
		if self.scalar is None:
			raise IRValidationError("unresolved dtype has no range")
		if self.scalar is np.uint32:
			return int(np.iinfo(self.scalar).max)
		return float(np.finfo(self.scalar).max)

	def coerce(self, value: object) -> float | int | None:
		"""Return `value` as the canonical Python scalar for this dtype."""

		if self.scalar is None:
			return None
		if self.scalar is np.uint32:
			as_int = int(value)  # type: ignore[call-overload]
			if as_int != value or not 0 <= as_int <= self.max:
				raise IRValidationError(f"{value!r} is not representable as {self.name}")
			return as_int
		return float(self.scalar(value))

	def __str__(self) -> str:  # pragma: no cover
		return self.name


float64 = DType("float64", 8, np.float64)
uint32 = DType("uint32", 4, np.uint32)
unresolved = DType("unresolved", 0)
