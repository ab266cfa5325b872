"""
Tests for box decoding and overlay rendering.
"""

import numpy as np
import pytest

from detection.renderer import BoxRenderer, Overlay, render_boxes, class_color, PALETTE


def _buffers(rows):
    """rows: list of ((x1, y1, x2, y2), score, class_id) -> flat buffers."""
    boxes = np.array([r[0] for r in rows], dtype=np.float32).ravel()
    scores = np.array([r[1] for r in rows], dtype=np.float32)
    classes = np.array([r[2] for r in rows], dtype=np.float32)
    return boxes, scores, classes


class TestRenderBoxes:
    def test_threshold_is_inclusive(self):
        overlay = Overlay(100, 100)
        boxes, scores, classes = _buffers([
            ((0.1, 0.1, 0.2, 0.2), 0.5, 0),
            ((0.3, 0.3, 0.4, 0.4), 0.25, 1),
            ((0.5, 0.5, 0.6, 0.6), 0.1, 2),
        ])
        dets = render_boxes(overlay, 0.25, boxes, scores, classes, (1.0, 1.0))
        assert [d.class_id for d in dets] == [0, 1]
        assert dets[1].confidence == pytest.approx(0.25)

    def test_maps_back_to_source_pixels(self):
        overlay = Overlay(640, 480)
        boxes, scores, classes = _buffers([((0.5, 0.5, 1.0, 0.75), 0.9, 2)])
        dets = render_boxes(overlay, 0.5, boxes, scores, classes, (1.0, 640 / 480))
        assert len(dets) == 1
        assert dets[0].bbox.as_tuple() == pytest.approx((320.0, 320.0, 640.0, 480.0))

    def test_boxes_in_padding_are_clipped(self):
        overlay = Overlay(640, 480)
        boxes, scores, classes = _buffers([((0.0, 0.5, 0.5, 1.0), 0.9, 0)])
        dets = render_boxes(overlay, 0.5, boxes, scores, classes, (1.0, 640 / 480))
        assert dets[0].y2 == pytest.approx(480.0)

    def test_uses_labels(self):
        overlay = Overlay(50, 50)
        boxes, scores, classes = _buffers([((0.1, 0.1, 0.5, 0.5), 0.8, 1)])
        dets = render_boxes(overlay, 0.5, boxes, scores, classes, (1.0, 1.0), labels={1: "cat"})
        assert dets[0].class_name == "cat"
        assert dets[0].label == "cat - 80.0%"

    def test_draws_and_records_detections(self):
        overlay = Overlay(100, 100)
        boxes, scores, classes = _buffers([((0.2, 0.2, 0.8, 0.8), 0.9, 0)])
        dets = render_boxes(overlay, 0.5, boxes, scores, classes, (1.0, 1.0))
        assert overlay.detections == dets
        assert overlay.mask.any()
        assert tuple(overlay.canvas[50, 20]) == class_color(0)

    def test_clears_previous_render(self):
        overlay = Overlay(100, 100)
        boxes, scores, classes = _buffers([((0.2, 0.2, 0.8, 0.8), 0.9, 0)])
        render_boxes(overlay, 0.5, boxes, scores, classes, (1.0, 1.0))
        dets = render_boxes(overlay, 0.95, boxes, scores, classes, (1.0, 1.0))
        assert dets == []
        assert overlay.is_empty

    def test_empty_buffers(self):
        overlay = Overlay(10, 10)
        dets = render_boxes(overlay, 0.5, [], [], [], (1.0, 1.0))
        assert dets == []

    @pytest.mark.parametrize("threshold", [-0.1, 1.5])
    def test_rejects_bad_threshold(self, threshold):
        with pytest.raises(ValueError, match="threshold"):
            render_boxes(Overlay(10, 10), threshold, [], [], [], (1.0, 1.0))

    def test_rejects_misaligned_buffers(self):
        with pytest.raises(ValueError, match="Misaligned"):
            render_boxes(Overlay(10, 10), 0.5, [0.1, 0.1], [0.9], [0], (1.0, 1.0))


class TestOverlay:
    def test_ensure_size_reallocates(self):
        overlay = Overlay(10, 10)
        overlay.ensure_size(20, 5)
        assert overlay.canvas.shape == (5, 20, 3)
        assert overlay.mask.shape == (5, 20)

    def test_composite_leaves_frame_untouched(self):
        overlay = Overlay(100, 100)
        boxes, scores, classes = _buffers([((0.2, 0.2, 0.8, 0.8), 0.9, 3)])
        render_boxes(overlay, 0.5, boxes, scores, classes, (1.0, 1.0))
        frame = np.zeros((100, 100, 3), dtype=np.uint8)
        out = overlay.composite(frame)
        assert frame.max() == 0
        assert out.max() > 0

    def test_composite_size_mismatch_returns_copy(self):
        overlay = Overlay(10, 10)
        frame = np.ones((20, 20, 3), dtype=np.uint8)
        out = overlay.composite(frame)
        assert out is not frame
        assert np.array_equal(out, frame)

    @pytest.mark.parametrize("shape", [(100, 100), (100, 100, 1), (100, 100, 4)])
    def test_composite_non_bgr_frames(self, shape):
        overlay = Overlay(100, 100)
        boxes, scores, classes = _buffers([((0.2, 0.2, 0.8, 0.8), 0.9, 3)])
        render_boxes(overlay, 0.5, boxes, scores, classes, (1.0, 1.0))
        frame = np.full(shape, 50, dtype=np.uint8)

        out = overlay.composite(frame)

        assert out.shape == (100, 100, 3)
        covered = overlay.mask > 0
        assert np.array_equal(out[covered], overlay.canvas[covered])
        assert (out[~covered] == 50).all()


class TestBoxRenderer:
    def test_defaults_to_coco_labels(self):
        renderer = BoxRenderer()
        overlay = Overlay(100, 100)
        boxes, scores, classes = _buffers([((0.1, 0.1, 0.4, 0.4), 0.7, 2)])
        dets = renderer.render(overlay, 0.5, boxes, scores, classes, (1.0, 1.0))
        assert dets[0].class_name == "car"

    def test_clear(self):
        renderer = BoxRenderer()
        overlay = Overlay(100, 100)
        boxes, scores, classes = _buffers([((0.1, 0.1, 0.4, 0.4), 0.7, 2)])
        renderer.render(overlay, 0.5, boxes, scores, classes, (1.0, 1.0))
        renderer.clear(overlay)
        assert overlay.is_empty

    def test_palette_wraps(self):
        assert class_color(len(PALETTE)) == class_color(0)
