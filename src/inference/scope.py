"""
Scoped tensor lifetimes.

A TensorScope is an explicit arena handle: every tensor allocated while
handling one frame is registered with it, and all of them are released together
when the scope exits, whether the block finished or raised. Only tensors
passed through keep() outlive the scope.

    with TensorScope("frame") as scope:
        tensor, x_ratio, y_ratio = preprocess(frame, 640, 640, scope=scope)
        outputs = scope.track_all(model.execute(tensor))
        ...
    # tensor and outputs are released here
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List


def dispose(tensor: Any) -> None:
    """Release a single tensor. Runtime-owned buffers expose release()."""
    release = getattr(tensor, "release", None)
    if callable(release):
        release()


class TensorScope:
    """Arena that releases every tracked tensor on exit."""

    def __init__(self, name: str = "scope"):
        self.name = name
        self._tensors: List[Any] = []
        self._closed = False
        self.tracked_count = 0
        self.released_count = 0

    @property
    def live(self) -> int:
        """Number of tensors currently held by the scope."""
        return len(self._tensors)

    @property
    def closed(self) -> bool:
        return self._closed

    def track(self, tensor: Any) -> Any:
        """Register a tensor with the scope and return it unchanged."""
        if self._closed:
            raise RuntimeError(f"TensorScope '{self.name}' is already closed")
        self._tensors.append(tensor)
        self.tracked_count += 1
        return tensor

    def track_all(self, tensors: Iterable[Any]) -> List[Any]:
        return [self.track(t) for t in tensors]

    def keep(self, tensor: Any) -> Any:
        """Remove a tensor from the scope so it survives release()."""
        for i, held in enumerate(self._tensors):
            if held is tensor:
                del self._tensors[i]
                break
        return tensor

    def release(self) -> None:
        """Release every tracked tensor. Safe to call multiple times."""
        while self._tensors:
            dispose(self._tensors.pop())
            self.released_count += 1
        if not self._closed:
            logging.debug(
                f"TensorScope '{self.name}' closed: tracked={self.tracked_count}, "
                f"released={self.released_count}"
            )
        self._closed = True

    def __enter__(self) -> "TensorScope":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()
