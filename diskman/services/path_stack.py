from typing import List


SEPARATOR = "/"


class InvalidSegmentError(ValueError):
    """Raised when a path segment is empty or contains a separator."""


class PathStack:
    """Current virtual directory as an ordered list of folder names.

    The root is the empty stack. Joining the segments with ``/`` yields the
    canonical virtual path sent to the backend.
    """

    def __init__(self) -> None:
        self._segments: List[str] = []

    def push(self, segment: str) -> None:
        if not segment or SEPARATOR in segment:
            raise InvalidSegmentError(f"Invalid path segment: {segment!r}")
        self._segments.append(segment)

    def pop(self) -> None:
        # Popping the root is a no-op; callers check is_root() when it matters
        if self._segments:
            self._segments.pop()

    def current_path(self) -> str:
        return SEPARATOR.join(self._segments)

    def is_root(self) -> bool:
        return not self._segments

    @property
    def segments(self) -> tuple[str, ...]:
        return tuple(self._segments)

    def __len__(self) -> int:
        return len(self._segments)
