import struct

import numpy as np
import pytest
from scipy.spatial.transform import Rotation as R

from camstream_sdk_python.stream_receiver.pose_decoder import PoseDecoder
from camstream_sdk_python.utils.basis_utils import (
    RIGHT_TO_LEFT_HANDED,
    change_basis_rotation,
    is_orthonormal,
    nearest_orthogonal,
    quat_to_rotation,
    rotation_to_quat,
)
from camstream_sdk_python.utils.packet_builder import (
    axis_packet,
    extrinsics_packet,
    position_packet,
)


FLIP_Z = [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, -1.0]]


def test_position_cm_to_m_then_basis():
    decoder = PoseDecoder(protocol="position")
    assert decoder.decode(position_packet(250.0, 0.0, 0.0))
    np.testing.assert_allclose(decoder.pose()["position"], [2.5, 0.0, 0.0])

    decoder.decode(position_packet(0.0, 250.0, 0.0))
    np.testing.assert_allclose(decoder.pose()["position"], [0.0, 0.0, -2.5])

    decoder.decode(position_packet(0.0, 0.0, 250.0))
    np.testing.assert_allclose(decoder.pose()["position"], [0.0, -2.5, 0.0])


def test_position_packet_leaves_rotation_alone():
    decoder = PoseDecoder(protocol="position")
    decoder.decode(position_packet(10.0, 20.0, 30.0))
    pose = decoder.pose()
    np.testing.assert_allclose(pose["rotation"], np.eye(3))
    assert pose["vertical_fov"] is None


def test_position_variant_rejects_calibrated_shapes():
    decoder = PoseDecoder(protocol="position")
    assert not decoder.decode(axis_packet(FLIP_Z, 60.0))
    assert not decoder.decode(extrinsics_packet(np.eye(3), [0, 0, 0]))
    np.testing.assert_allclose(decoder.pose()["position"], np.zeros(3))


def test_unknown_format_is_ignored():
    decoder = PoseDecoder(protocol="calibrated")
    packet = struct.pack(">I", 9) + b"\x00" * 40
    assert not decoder.decode(packet)


def test_wrong_length_is_ignored():
    decoder = PoseDecoder(protocol="position")
    assert not decoder.decode(position_packet(1.0, 2.0, 3.0) + b"\x00")


def test_unknown_protocol():
    with pytest.raises(ValueError):
        PoseDecoder(protocol="v3")


def test_control_sizes():
    assert PoseDecoder("position").control_size(2) == 28
    calibrated = PoseDecoder("calibrated")
    assert calibrated.control_size(2) == 44
    assert calibrated.control_size(3) == 52
    assert calibrated.control_size(1) is None


def test_extrinsics_before_calibration_use_identity():
    decoder = PoseDecoder(protocol="calibrated")
    rot = R.from_euler("xyz", [0.1, 0.2, 0.3]).as_matrix()
    assert decoder.decode(extrinsics_packet(rot, [250.0, -100.0, 50.0]))
    pose = decoder.pose()
    assert not decoder.calibrated
    np.testing.assert_allclose(pose["rotation"], rot, atol=1e-6)
    np.testing.assert_allclose(pose["position"], [2.5, -1.0, 0.5], atol=1e-6)


def test_axis_packet_calibrates_and_sets_fov():
    decoder = PoseDecoder(protocol="calibrated")
    assert decoder.decode(axis_packet(FLIP_Z, 60.0))
    assert decoder.calibrated
    np.testing.assert_allclose(decoder.basis, FLIP_Z, atol=1e-6)
    assert decoder.pose()["vertical_fov"] == pytest.approx(60.0)

    decoder.decode(extrinsics_packet(np.eye(3), [0.0, 0.0, 250.0]))
    pose = decoder.pose()
    np.testing.assert_allclose(pose["position"], [0.0, 0.0, -2.5], atol=1e-6)
    np.testing.assert_allclose(pose["rotation"], np.eye(3), atol=1e-6)


def test_calibration_is_set_once():
    decoder = PoseDecoder(protocol="calibrated")
    decoder.decode(axis_packet(FLIP_Z, 60.0))
    decoder.decode(axis_packet(np.eye(3), 45.0))
    np.testing.assert_allclose(decoder.basis, FLIP_Z, atol=1e-6)
    assert decoder.pose()["vertical_fov"] == pytest.approx(45.0)


def test_singular_axis_basis_is_rejected():
    decoder = PoseDecoder(protocol="calibrated")
    assert not decoder.decode(axis_packet(np.zeros((3, 3)), 60.0))
    assert not decoder.calibrated


def test_rotation_transform_preserves_orthonormality():
    decoder = PoseDecoder(protocol="calibrated")
    # Slightly noisy axes still give an orthogonal basis
    noisy = np.array(FLIP_Z) + 1e-3 * np.array([[0.0, 1.0, 0.0], [0.5, 0.0, 0.0], [0.0, 0.2, 0.0]])
    decoder.decode(axis_packet(noisy, 60.0))
    assert is_orthonormal(decoder.basis)

    angles = np.random.default_rng(3).uniform(-np.pi, np.pi, size=(20, 3))
    for rot in R.from_euler("xyz", angles).as_matrix():
        decoder.decode(extrinsics_packet(rot, [0.0, 0.0, 0.0]))
        pose = decoder.pose()
        assert is_orthonormal(pose["rotation"], atol=1e-5)
        assert np.linalg.det(pose["rotation"]) == pytest.approx(1.0, abs=1e-5)
        np.testing.assert_allclose(quat_to_rotation(pose["quaternion"]), pose["rotation"], atol=1e-5)


def test_handedness_flip_preserves_proper_rotation():
    rot = R.from_euler("zyx", [0.7, -0.2, 1.1]).as_matrix()
    out = change_basis_rotation(RIGHT_TO_LEFT_HANDED, rot)
    assert np.linalg.det(RIGHT_TO_LEFT_HANDED) == pytest.approx(-1.0)
    assert is_orthonormal(out)
    assert np.linalg.det(out) == pytest.approx(1.0)


def test_nearest_orthogonal_keeps_reflection():
    m = nearest_orthogonal(np.diag([2.0, 1.0, -0.5]))
    np.testing.assert_allclose(m, np.diag([1.0, 1.0, -1.0]), atol=1e-12)


def test_nearest_orthogonal_shape():
    with pytest.raises(ValueError):
        nearest_orthogonal(np.eye(2))


def test_rotation_to_quat_wxyz():
    q = rotation_to_quat(R.from_euler("z", 90, degrees=True).as_matrix())
    s = np.sqrt(0.5)
    np.testing.assert_allclose(q, [s, 0.0, 0.0, s], atol=1e-12)


def test_pose_is_a_copy():
    decoder = PoseDecoder(protocol="position")
    decoder.decode(position_packet(100.0, 0.0, 0.0))
    pose = decoder.pose()
    pose["position"][0] = 99.0
    assert decoder.pose()["position"][0] == pytest.approx(1.0)


def test_reset_forgets_calibration():
    decoder = PoseDecoder(protocol="calibrated")
    decoder.decode(axis_packet(FLIP_Z, 60.0))
    decoder.reset()
    assert not decoder.calibrated
    np.testing.assert_allclose(decoder.basis, np.eye(3))
    assert decoder.pose()["vertical_fov"] is None


@pytest.mark.parametrize("bad", [float("inf"), float("-inf"), float("nan")])
def test_non_finite_axis_packet_is_rejected(bad):
    decoder = PoseDecoder(protocol="calibrated")
    axes = [[bad, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, -1.0]]
    assert not decoder.decode(axis_packet(axes, 60.0))
    assert not decoder.decode(axis_packet(FLIP_Z, bad))
    assert not decoder.calibrated
    assert decoder.pose()["vertical_fov"] is None

    # A good packet afterwards still calibrates
    assert decoder.decode(axis_packet(FLIP_Z, 60.0))
    assert decoder.calibrated


@pytest.mark.parametrize("bad", [float("inf"), float("nan")])
def test_non_finite_extrinsics_packet_is_rejected(bad):
    decoder = PoseDecoder(protocol="calibrated")
    rot = np.eye(3)
    rot[1, 2] = bad
    assert not decoder.decode(extrinsics_packet(rot, [0.0, 0.0, 0.0]))
    assert not decoder.decode(extrinsics_packet(np.eye(3), [bad, 0.0, 0.0]))
    pose = decoder.pose()
    assert np.isfinite(pose["rotation"]).all()
    assert np.isfinite(pose["position"]).all()


@pytest.mark.parametrize("bad", [float("inf"), float("nan")])
def test_non_finite_position_packet_is_rejected(bad):
    decoder = PoseDecoder(protocol="position")
    decoder.decode(position_packet(100.0, 0.0, 0.0))
    assert not decoder.decode(position_packet(0.0, bad, 0.0))
    np.testing.assert_allclose(decoder.pose()["position"], [1.0, 0.0, 0.0])


def test_nearest_orthogonal_rejects_non_finite():
    with pytest.raises(ValueError):
        nearest_orthogonal([[np.inf, 0, 0], [0, 1, 0], [0, 0, 1]])
