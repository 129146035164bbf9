"""
Unit tests for render_video_core.py - Functional Core

Tests pure image conversion and drawing functions with no side effects.
Fast, deterministic tests on small canvases.
"""

import pytest
import numpy as np
from PIL import ImageFont
from render_video_core import (
    bounding_box,
    create_cv2_canvas,
    create_text_overlay,
    cv2_composite_layer,
    cv2_draw_polygon,
    cv2_to_pil,
    rgba_to_bgr,
    to_fixed_point,
)


# ============================================================================
# Tests for image format conversions
# ============================================================================

class TestImageConversions:
    """Tests for OpenCV → PIL conversion"""

    def test_cv2_to_pil_basic(self):
        """OpenCV array converts to PIL Image"""
        cv2_img = np.zeros((100, 100, 3), dtype=np.uint8)
        cv2_img[50, 50, :] = [255, 128, 64]  # BGR

        pil_img = cv2_to_pil(cv2_img)

        assert pil_img.size == (100, 100)
        assert pil_img.mode == 'RGB'
        assert pil_img.getpixel((50, 50)) == (64, 128, 255)


class TestColorConversion:
    """Tests for RGBA → BGR splitting"""

    def test_rgba(self):
        """Channels swap and alpha normalizes"""
        bgr, alpha = rgba_to_bgr((10, 20, 30, 51))
        assert bgr == (30, 20, 10)
        assert alpha == pytest.approx(0.2)

    def test_rgb_is_opaque(self):
        """Missing alpha means opaque"""
        assert rgba_to_bgr((1, 2, 3)) == ((3, 2, 1), 1.0)

    def test_overshoot_is_clamped(self):
        """Brightness can push channels past 255"""
        bgr, alpha = rgba_to_bgr((267.75, -5.0, 300.0, 400.0))
        assert bgr == (255, 0, 255)
        assert alpha == 1.0


# ============================================================================
# Tests for OpenCV canvas operations
# ============================================================================

class TestOpenCVCanvas:
    """Tests for canvas creation"""

    def test_create_cv2_canvas_3channel(self):
        """Create BGR canvas with correct dimensions"""
        canvas = create_cv2_canvas(150, 100, channels=3)

        assert canvas.shape == (100, 150, 3)
        assert canvas.dtype == np.uint8
        assert np.all(canvas == 0)

    def test_create_cv2_canvas_with_fill_color(self):
        """Canvas with fill color should be initialized"""
        canvas = create_cv2_canvas(50, 50, channels=3, fill_color=(50, 15, 5))

        assert np.all(canvas[:, :, 0] == 50)  # B
        assert np.all(canvas[:, :, 1] == 15)  # G
        assert np.all(canvas[:, :, 2] == 5)   # R

    def test_create_cv2_canvas_4channel(self):
        """BGRA canvas with alpha fill"""
        canvas = create_cv2_canvas(50, 50, channels=4, fill_color=(255, 128, 64, 200))

        assert canvas.shape == (50, 50, 4)
        assert canvas[0, 0, 3] == 200

    def test_zero_size_canvas(self):
        """Zero-size canvas should be handled gracefully"""
        assert create_cv2_canvas(0, 0, channels=3).shape == (0, 0, 3)


class TestGeometryHelpers:
    """Tests for fixed-point conversion and bounding boxes"""

    def test_fixed_point(self):
        """Coordinates are scaled by 2**shift and rounded"""
        pts = to_fixed_point([(1.0, 2.5), (0.25, 0.0)], shift=4)
        assert pts.shape == (2, 1, 2)
        assert pts.dtype == np.int32
        assert pts[0, 0].tolist() == [16, 40]
        assert pts[1, 0].tolist() == [4, 0]

    def test_bounding_box_clipped(self):
        """Box is clipped to the canvas"""
        assert bounding_box([(-10.0, -10.0), (500.0, 500.0)], 100, 80) == (0, 0, 100, 80)

    def test_bounding_box_padded(self):
        """Padding grows the box"""
        x0, y0, x1, y1 = bounding_box([(40.0, 40.0), (60.0, 60.0)], 100, 100, padding=5.0)
        assert x0 <= 35 and y0 <= 35
        assert x1 >= 65 and y1 >= 65

    def test_bounding_box_off_canvas(self):
        """Shapes entirely outside give None"""
        assert bounding_box([(200.0, 10.0), (250.0, 20.0)], 100, 100) is None


# ============================================================================
# Tests for polygon drawing
# ============================================================================

SQUARE = [(20.0, 20.0), (80.0, 20.0), (80.0, 80.0), (20.0, 80.0)]


class TestPolygonDrawing:
    """Tests for cv2_draw_polygon"""

    def test_opaque_fill(self):
        """Opaque fill paints the interior in BGR"""
        canvas = create_cv2_canvas(100, 100)
        cv2_draw_polygon(canvas, SQUARE, (255, 0, 0, 255))

        assert canvas[50, 50].tolist() == [0, 0, 255]
        assert canvas[5, 5].tolist() == [0, 0, 0]

    def test_translucent_fill_blends(self):
        """Alpha blends with what is underneath"""
        canvas = create_cv2_canvas(100, 100, fill_color=(100, 100, 100))
        cv2_draw_polygon(canvas, SQUARE, (200, 200, 200, 127.5))

        assert np.allclose(canvas[50, 50], 150, atol=2)
        assert canvas[5, 5].tolist() == [100, 100, 100]

    def test_outline_leaves_interior(self):
        """Stroked outline does not fill"""
        canvas = create_cv2_canvas(100, 100)
        cv2_draw_polygon(canvas, SQUARE, (255, 255, 255, 255), thickness=2.0)

        assert canvas[50, 50].tolist() == [0, 0, 0]
        assert canvas[20, 50].max() > 100

    def test_open_polyline(self):
        """closed=False leaves the last edge out"""
        canvas = create_cv2_canvas(100, 100)
        cv2_draw_polygon(canvas, SQUARE, (255, 255, 255, 255), thickness=1.0, closed=False)

        assert canvas[20, 50].max() > 100
        assert canvas[50, 20].max() == 0

    def test_zero_alpha_draws_nothing(self):
        """Fully transparent shapes are skipped"""
        canvas = create_cv2_canvas(100, 100)
        cv2_draw_polygon(canvas, SQUARE, (255, 255, 255, 0))
        assert np.all(canvas == 0)

    def test_too_few_points_draws_nothing(self):
        """Fills need three vertices, strokes two"""
        canvas = create_cv2_canvas(100, 100)
        cv2_draw_polygon(canvas, SQUARE[:2], (255, 255, 255, 255))
        assert np.all(canvas == 0)
        cv2_draw_polygon(canvas, SQUARE[:1], (255, 255, 255, 255), thickness=1.0)
        assert np.all(canvas == 0)

    def test_partially_off_canvas(self):
        """Shapes crossing the edge are clipped"""
        canvas = create_cv2_canvas(100, 100)
        cv2_draw_polygon(canvas, [(-50.0, -50.0), (50.0, -50.0), (50.0, 50.0), (-50.0, 50.0)], (0, 255, 0, 255))
        assert canvas[10, 10].tolist() == [0, 255, 0]
        assert canvas[90, 90].tolist() == [0, 0, 0]

    def test_fully_off_canvas(self):
        """Shapes entirely outside are ignored"""
        canvas = create_cv2_canvas(100, 100)
        cv2_draw_polygon(canvas, [(200.0, 200.0), (300.0, 200.0), (300.0, 300.0)], (0, 255, 0, 255))
        assert np.all(canvas == 0)


# ============================================================================
# Tests for compositing and text
# ============================================================================

class TestCompositing:
    """Tests for layer compositing"""

    def test_cv2_composite_layer_with_alpha_channel(self):
        """Composite 4-channel overlay with alpha onto 3-channel base"""
        base = create_cv2_canvas(100, 100, channels=3, fill_color=(0, 0, 0))
        overlay = create_cv2_canvas(100, 100, channels=4, fill_color=(255, 255, 255, 128))

        cv2_composite_layer(base, overlay, alpha=1.0)

        assert np.allclose(base[50, 50, :], 127, atol=5)

    def test_opacity_multiplier(self):
        """alpha=0 keeps the base, alpha=1 uses the overlay's own alpha"""
        base = create_cv2_canvas(100, 100, channels=3, fill_color=(100, 100, 100))
        overlay = create_cv2_canvas(100, 100, channels=4, fill_color=(200, 200, 200, 255))

        cv2_composite_layer(base, overlay, alpha=0.0)
        assert np.all(base == 100)

        cv2_composite_layer(base, overlay, alpha=0.5)
        assert np.allclose(base, 150, atol=1)

        cv2_composite_layer(base, overlay, alpha=1.0)
        assert np.all(base == 200)

    def test_overlay_without_alpha_rejected(self):
        """3-channel overlays are an error"""
        base = create_cv2_canvas(10, 10)
        with pytest.raises(ValueError, match="BGRA"):
            cv2_composite_layer(base, create_cv2_canvas(10, 10, channels=3))


class TestTextOverlay:
    """Tests for the year label overlay"""

    def test_overlay_shape_and_transparency(self):
        """BGRA overlay, mostly transparent"""
        overlay = create_text_overlay(200, 100, "2012", ImageFont.load_default())

        assert overlay.shape == (100, 200, 4)
        assert overlay[0, 199, 3] == 0
        assert np.count_nonzero(overlay[:, :, 3]) > 0

    def test_text_sits_bottom_left(self):
        """Label pixels are in the lower-left corner"""
        overlay = create_text_overlay(200, 100, "1979", ImageFont.load_default(), margin=10)
        ys, xs = np.nonzero(overlay[:, :, 3])

        assert xs.min() >= 10
        assert xs.max() < 100
        assert ys.min() > 50
        assert ys.max() <= 90

    def test_composite_label_onto_canvas(self):
        """Label brightens the canvas where drawn"""
        canvas = create_cv2_canvas(200, 100, fill_color=(50, 15, 5))
        overlay = create_text_overlay(200, 100, "2024", ImageFont.load_default())

        cv2_composite_layer(canvas, overlay)

        assert canvas.max() > 50
        assert canvas[0, 199].tolist() == [50, 15, 5]


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
