"""
Tests for frame preprocessing.
"""

import numpy as np
import pytest
from unittest.mock import patch

from detection.preprocess import preprocess, pad_to_square, to_rgb
from inference.scope import TensorScope


class TestPadToSquare:
    def test_wide_frame_pads_bottom(self):
        img = np.ones((50, 100, 3), dtype=np.uint8)
        padded, max_size = pad_to_square(img)
        assert max_size == 100
        assert padded.shape == (100, 100, 3)
        assert padded[:50].min() == 1
        assert padded[50:].max() == 0

    def test_tall_frame_pads_right(self):
        img = np.ones((100, 40, 3), dtype=np.uint8)
        padded, max_size = pad_to_square(img)
        assert max_size == 100
        assert padded.shape == (100, 100, 3)
        assert padded[:, :40].min() == 1
        assert padded[:, 40:].max() == 0

    def test_square_frame_untouched(self):
        img = np.ones((64, 64, 3), dtype=np.uint8)
        padded, max_size = pad_to_square(img)
        assert max_size == 64
        assert padded is img


class TestToRgb:
    def test_bgr_to_rgb(self):
        frame = np.zeros((2, 2, 3), dtype=np.uint8)
        frame[..., 0] = 255  # blue in BGR
        rgb = to_rgb(frame)
        assert rgb[0, 0].tolist() == [0, 0, 255]

    def test_rgb_passthrough(self):
        frame = np.zeros((2, 2, 3), dtype=np.uint8)
        assert to_rgb(frame, bgr=False) is frame

    def test_grayscale_and_alpha(self):
        assert to_rgb(np.zeros((4, 5), dtype=np.uint8)).shape == (4, 5, 3)
        assert to_rgb(np.zeros((4, 5, 4), dtype=np.uint8)).shape == (4, 5, 3)

    def test_rejects_bad_shape(self):
        with pytest.raises(ValueError):
            to_rgb(np.zeros((2, 2, 2, 3), dtype=np.uint8))


class TestPreprocess:
    def test_640x480_into_416_model(self, frame_640x480):
        tensor, x_ratio, y_ratio = preprocess(frame_640x480, 416, 416)
        assert tensor.shape == (1, 416, 416, 3)
        assert x_ratio == 1.0
        assert y_ratio == pytest.approx(640 / 480)

    def test_ratios_recover_max_size(self):
        for w, h in [(640, 480), (300, 800), (17, 5)]:
            frame = np.zeros((h, w, 3), dtype=np.uint8)
            _, x_ratio, y_ratio = preprocess(frame, 32, 32)
            assert x_ratio * w == pytest.approx(max(w, h))
            assert y_ratio * h == pytest.approx(max(w, h))

    def test_square_frame_ratios_are_one(self):
        frame = np.zeros((200, 200, 3), dtype=np.uint8)
        _, x_ratio, y_ratio = preprocess(frame, 64, 64)
        assert x_ratio == 1
        assert y_ratio == 1

    @pytest.mark.parametrize("shape", [(480, 640, 3), (640, 480, 3), (100, 100, 3), (30, 90)])
    def test_output_shape_independent_of_aspect(self, shape):
        frame = np.full(shape, 200, dtype=np.uint8)
        tensor, _, _ = preprocess(frame, 320, 256)
        assert tensor.shape == (1, 256, 320, 3)

    def test_values_normalized(self, frame_640x480):
        tensor, _, _ = preprocess(frame_640x480, 128, 128)
        assert tensor.dtype == np.float32
        assert tensor.min() >= 0.0
        assert tensor.max() <= 1.0

    def test_content_stays_top_left(self):
        frame = np.full((50, 100, 3), 255, dtype=np.uint8)
        tensor, _, _ = preprocess(frame, 100, 100)
        assert np.allclose(tensor[0, :50], 1.0)
        assert np.allclose(tensor[0, 50:], 0.0)

    def test_channel_order_is_rgb(self):
        frame = np.zeros((8, 8, 3), dtype=np.uint8)
        frame[..., 2] = 255  # red in BGR
        tensor, _, _ = preprocess(frame, 8, 8)
        assert np.allclose(tensor[0, ..., 0], 1.0)
        assert np.allclose(tensor[0, ..., 2], 0.0)

    def test_output_owns_its_buffer(self, frame_640x480):
        tensor, _, _ = preprocess(frame_640x480, 64, 64)
        assert tensor.flags.owndata
        assert tensor.base is None

    @pytest.mark.parametrize("shape, bgr", [((64, 64, 3), False), ((48, 64, 3), False), ((64, 64, 3), True)])
    def test_caller_frame_is_never_tracked(self, shape, bgr):
        tracked = []

        class SpyScope(TensorScope):
            def track(self, tensor):
                tracked.append(tensor)
                return super().track(tensor)

        frame = np.zeros(shape, dtype=np.uint8)
        with patch("detection.preprocess.TensorScope", SpyScope):
            tensor, _, _ = preprocess(frame, 32, 32, bgr=bgr)

        assert tracked
        assert not any(t is frame for t in tracked)
        assert tensor.shape == (1, 32, 32, 3)

    def test_caller_scope_owns_only_the_output(self, frame_640x480):
        with TensorScope("caller") as scope:
            tensor, _, _ = preprocess(frame_640x480, 64, 64, scope=scope)
            assert scope.live == 1
            assert scope.tracked_count == 1
        assert scope.live == 0
