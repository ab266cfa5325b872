"""
Tests for scoped tensor lifetimes.
"""

import numpy as np
import pytest

from inference.scope import TensorScope, dispose


class Releasable:
    def __init__(self):
        self.released = False

    def release(self):
        self.released = True


class TestTensorScope:
    def test_release_on_exit(self):
        tensors = [Releasable(), Releasable()]
        with TensorScope() as scope:
            scope.track_all(tensors)
            assert scope.live == 2
        assert scope.closed
        assert scope.live == 0
        assert scope.released_count == 2
        assert all(t.released for t in tensors)

    def test_release_on_exception(self):
        tensor = Releasable()
        with pytest.raises(RuntimeError, match="boom"):
            with TensorScope() as scope:
                scope.track(tensor)
                raise RuntimeError("boom")
        assert tensor.released
        assert scope.live == 0

    def test_keep_survives_release(self):
        kept, dropped = Releasable(), Releasable()
        with TensorScope() as scope:
            scope.track(dropped)
            assert scope.keep(scope.track(kept)) is kept
        assert not kept.released
        assert dropped.released

    def test_keep_uses_identity(self):
        a = np.zeros(3)
        b = np.zeros(3)
        with TensorScope() as scope:
            scope.track(a)
            scope.track(b)
            scope.keep(b)
            assert scope.live == 1

    def test_track_after_close_raises(self):
        scope = TensorScope("done")
        scope.release()
        with pytest.raises(RuntimeError, match="already closed"):
            scope.track(np.zeros(1))

    def test_release_is_idempotent(self):
        scope = TensorScope()
        scope.track(Releasable())
        scope.release()
        scope.release()
        assert scope.released_count == 1

    def test_dispose_plain_array_is_noop(self):
        dispose(np.zeros(2))
