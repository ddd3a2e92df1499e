"""Fixed catalog of chat rooms configured at startup."""

from __future__ import annotations

from typing import Iterable, Iterator, Tuple

DEFAULT_ROOMS: Tuple[str, ...] = ("devops", "cloud computing", "covid19", "sports", "nodeJS")


class RoomCatalog:
	"""Ordered, immutable set of room names.

	Raises:
		RuntimeError: if the catalog is empty, or a name is blank or repeated.
	"""

	def __init__(self, rooms: Iterable[str]) -> None:
		names = tuple(room.strip() if isinstance(room, str) else room for room in rooms)
		if not names:
			raise RuntimeError("Room catalog must contain at least one room.")
		for name in names:
			if not isinstance(name, str) or not name:
				raise RuntimeError(f"Invalid room name in catalog: {name!r}")
		if len(set(names)) != len(names):
			raise RuntimeError(f"Room catalog contains duplicate names: {list(names)}")
		self._names = names
		self._lookup = frozenset(names)

	def __contains__(self, room: object) -> bool:
		return isinstance(room, str) and room in self._lookup

	def __iter__(self) -> Iterator[str]:
		return iter(self._names)

	def __len__(self) -> int:
		return len(self._names)

	@property
	def names(self) -> Tuple[str, ...]:
		return self._names
