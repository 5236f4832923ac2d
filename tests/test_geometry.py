"""
Tests for motion estimates and frame bounds.
"""

import math

import pytest
import numpy as np


class TestTransform:
    """Tests for the Transform algebra."""

    def test_identity(self):
        """Test identity has no motion."""
        from livestab.geometry import Transform

        identity = Transform.identity()
        assert identity.translation == (0.0, 0.0)
        assert identity.rotation == 0.0
        assert identity.scale == 1.0
        assert identity.is_identity()

    def test_addition(self):
        """Test translations and rotations add while scales multiply."""
        from livestab.geometry import Transform

        a = Transform((2.0, -1.0), rotation=0.1, scale=2.0)
        b = Transform((1.0, 3.0), rotation=0.2, scale=1.5)
        total = a + b

        assert total.translation == pytest.approx((3.0, 2.0))
        assert total.rotation == pytest.approx(0.3)
        assert total.scale == pytest.approx(3.0)

    def test_multiply_by_zero_is_identity(self):
        """Test that any transform times zero is the identity."""
        from livestab.geometry import Transform

        assert (Transform((5.0, 7.0), 0.4, 1.3) * 0.0).is_identity()

    def test_scalar_on_either_side(self):
        """Test left and right scalar multiplication agree."""
        from livestab.geometry import Transform

        t = Transform((4.0, 2.0), 0.2, 4.0)
        assert 0.5 * t == t * 0.5
        assert (t * 0.5).scale == pytest.approx(2.0)

    def test_subtraction_inverts_addition(self):
        """Test (a + b) - b == a."""
        from livestab.geometry import Transform

        a = Transform((2.0, -1.0), 0.1, 1.2)
        b = Transform((1.0, 3.0), -0.3, 0.8)
        result = (a + b) - b

        assert result.translation == pytest.approx(a.translation)
        assert result.rotation == pytest.approx(a.rotation)
        assert result.scale == pytest.approx(a.scale)

    def test_lerp(self):
        """Test interpolation endpoints and midpoint."""
        from livestab.geometry import Transform, lerp

        a = Transform((0.0, 0.0))
        b = Transform((10.0, -4.0))

        assert lerp(a, b, 0.0) == a
        assert lerp(a, b, 1.0).translation == pytest.approx(b.translation)
        assert lerp(a, b, 0.5).translation == pytest.approx((5.0, -2.0))

    def test_invalid_scale(self):
        """Test non-positive scale is rejected."""
        from livestab.geometry import Transform

        with pytest.raises(ValueError):
            Transform(scale=0.0)

    def test_matrix_round_trip(self):
        """Test from_matrix recovers the parameters of as_matrix."""
        from livestab.geometry import Transform

        t = Transform((12.5, -3.0), rotation=math.radians(10), scale=1.1)
        recovered = Transform.from_matrix(t.as_matrix())

        assert recovered.translation == pytest.approx(t.translation)
        assert recovered.rotation == pytest.approx(t.rotation)
        assert recovered.scale == pytest.approx(t.scale)

    def test_transform_points(self):
        """Test a quarter turn plus shift."""
        from livestab.geometry import Transform

        t = Transform((1.0, 0.0), rotation=math.pi / 2)
        points = t.transform_points(np.array([[1.0, 0.0], [0.0, 2.0]]))

        np.testing.assert_allclose(points, [[1.0, 1.0], [-1.0, 0.0]], atol=1e-12)

    def test_warp_moves_pixels(self):
        """Test warping shifts image content by the translation."""
        from livestab.geometry import Transform

        frame = np.zeros((40, 60), dtype=np.uint8)
        frame[10, 10] = 255
        warped = Transform((5.0, 3.0)).warp(frame)

        assert warped.shape == frame.shape
        assert warped[13, 15] == 255
        assert warped[10, 10] == 0


class TestWarpField:
    """Tests for WarpField."""

    def test_identity(self):
        """Test identity field has no motion."""
        from livestab.geometry import WarpField

        field = WarpField.identity((320, 240), (2, 2))
        assert field.offsets.shape == (2, 2, 2)
        assert field.is_identity()
        assert not field.has_local_motion()

    def test_offsets_read_only(self):
        """Test the offset grid cannot be modified in place."""
        from livestab.geometry import WarpField

        field = WarpField.identity((320, 240))
        with pytest.raises(ValueError):
            field.offsets[0, 0, 0] = 1.0

    def test_offsets_shape_checked(self):
        """Test mismatched offsets are rejected."""
        from livestab.geometry import WarpField

        with pytest.raises(ValueError):
            WarpField((320, 240), (2, 2), offsets=np.zeros((3, 2, 2)))

    def test_transform_promotion(self):
        """Test mixing a Transform with a field yields a field either way round."""
        from livestab.geometry import Transform, WarpField

        offsets = np.ones((2, 2, 2))
        field = WarpField((320, 240), (2, 2), offsets=offsets)
        shift = Transform((3.0, 0.0))

        for combined in (field + shift, shift + field):
            assert isinstance(combined, WarpField)
            assert combined.global_motion.translation == pytest.approx((3.0, 0.0))
            np.testing.assert_allclose(combined.offsets, offsets)

        difference = shift - field
        assert isinstance(difference, WarpField)
        np.testing.assert_allclose(difference.offsets, -offsets)

    def test_shape_mismatch(self):
        """Test fields of different shapes cannot be combined."""
        from livestab.geometry import WarpField

        with pytest.raises(ValueError):
            WarpField.identity((320, 240), (2, 2)) + WarpField.identity((320, 240), (3, 3))

    def test_multiply_by_zero(self):
        """Test a field times zero is the identity field."""
        from livestab.geometry import Transform, WarpField

        field = WarpField((320, 240), (2, 2), Transform((4.0, 1.0)), np.full((2, 2, 2), 2.0))
        zero = field * 0.0

        assert isinstance(zero, WarpField)
        assert zero.is_identity()

    def test_sample_offsets(self):
        """Test bilinear sampling at region centres, between them and at the edge."""
        from livestab.geometry import WarpField

        offsets = np.zeros((1, 2, 2))
        offsets[0, 1, 0] = 4.0
        field = WarpField((200, 100), (2, 1), offsets=offsets)

        samples = field.sample_offsets(np.array([
            [50.0, 50.0],    # left region centre
            [150.0, 50.0],   # right region centre
            [100.0, 50.0],   # halfway
            [0.0, 0.0],      # clamped corner
        ]))

        np.testing.assert_allclose(samples[:, 0], [0.0, 4.0, 2.0, 0.0], atol=1e-9)
        np.testing.assert_allclose(samples[:, 1], 0.0, atol=1e-9)

    def test_warp_without_local_motion(self):
        """Test a field with zero offsets warps like its global transform."""
        from livestab.geometry import Transform, WarpField

        frame = np.random.default_rng(1).integers(0, 256, (60, 80), dtype=np.uint8)
        shift = Transform((2.0, 1.0))
        field = WarpField.from_transform(shift, (80, 60))

        np.testing.assert_array_equal(field.warp(frame), shift.warp(frame))

    def test_warp_with_local_motion(self):
        """Test a uniform local offset acts as a translation."""
        from livestab.geometry import WarpField

        frame = np.zeros((60, 80), dtype=np.uint8)
        frame[20, 30] = 255
        field = WarpField((80, 60), (2, 2), offsets=np.tile([4.0, 2.0], (2, 2, 1)))
        warped = field.warp(frame)

        assert field.has_local_motion()
        assert warped[22, 34] == 255

    def test_dense_offsets_shape(self):
        """Test upsampled offsets cover every pixel."""
        from livestab.geometry import WarpField

        dense = WarpField.identity((64, 48), (4, 3)).dense_offsets()
        assert dense.shape == (48, 64, 2)


class TestCropRegion:
    """Tests for CropRegion."""

    def test_from_frame(self):
        """Test the centred crop for a 5% proportion."""
        from livestab.geometry import CropRegion

        crop = CropRegion.from_frame((1920, 1080), 0.05)
        assert crop.as_tuple() == (48, 27, 1824, 1026)

    def test_odd_margin(self):
        """Test the odd remainder goes to the bottom/right margin."""
        from livestab.geometry import CropRegion

        crop = CropRegion.from_frame((100, 100), 0.05)
        assert crop.as_tuple() == (2, 2, 95, 95)

    def test_invalid_proportion(self):
        """Test out-of-range proportions are rejected."""
        from livestab.geometry import CropRegion

        with pytest.raises(ValueError):
            CropRegion.from_frame((100, 100), 1.0)
        with pytest.raises(ValueError):
            CropRegion.from_frame((100, 100), -0.1)

    def test_slice(self):
        """Test cutting the region out of a frame."""
        from livestab.geometry import CropRegion

        crop = CropRegion.from_frame((320, 240), 0.05)
        frame = np.zeros((240, 320, 3), dtype=np.uint8)

        assert crop.slice(frame).shape == (228, 304, 3)
        assert crop.size == (304, 228)

    def test_corners(self):
        """Test corner order."""
        from livestab.geometry import CropRegion

        corners = CropRegion(10, 20, 30, 40).corners()
        np.testing.assert_array_equal(corners, [[10, 20], [40, 20], [40, 60], [10, 60]])


class TestBoundingBox:
    """Tests for BoundingBox enclosure."""

    def test_identity_encloses(self):
        """Test the unwarped frame encloses any crop inside it."""
        from livestab.geometry import BoundingBox, CropRegion

        box = BoundingBox((320, 240))
        assert box.encloses(CropRegion.from_frame((320, 240), 0.05))
        assert box.encloses(CropRegion.from_frame((320, 240), 0.0))

    def test_small_shift_encloses(self):
        """Test a shift within the margin keeps the crop covered."""
        from livestab.geometry import BoundingBox, CropRegion, Transform

        crop = CropRegion.from_frame((320, 240), 0.1)
        assert BoundingBox((320, 240), Transform((10.0, -5.0))).encloses(crop)

    def test_large_shift_does_not_enclose(self):
        """Test a shift beyond the margin exposes the crop."""
        from livestab.geometry import BoundingBox, CropRegion, Transform

        crop = CropRegion.from_frame((320, 240), 0.1)
        assert not BoundingBox((320, 240), Transform((40.0, 0.0))).encloses(crop)

    def test_rotation(self):
        """Test a large rotation exposes the crop corners."""
        from livestab.geometry import BoundingBox, CropRegion, Transform

        crop = CropRegion.from_frame((320, 240), 0.05)
        box = BoundingBox((320, 240), Transform(rotation=math.radians(20)))
        assert not box.encloses(crop)

    def test_retarget(self):
        """Test transform() moves the box to a new estimate."""
        from livestab.geometry import BoundingBox, CropRegion, Transform

        crop = CropRegion.from_frame((320, 240), 0.1)
        box = BoundingBox((320, 240), Transform((40.0, 0.0)))
        assert box.transform(Transform((1.0, 1.0))).encloses(crop)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
