"""
PoseDecoder - Decodes camera control packets into a target-frame pose.

Control packets are fixed-size datagrams identified by their leading format
tag and total length. Two protocol variants exist:

    "position"    format 2: 3 x f64 position (cm)                     -> 28 bytes
    "calibrated"  format 2: 9 x f32 axis basis + f32 vertical FOV     -> 44 bytes
                  format 3: 9 x f32 rotation + 3 x f32 translation cm -> 52 bytes

Lengths are in centimeters on the wire and meters in the pose. Rotations and
positions are mapped into the consumer's left-handed frame with a fixed
change-of-basis matrix C.
"""

import numpy as np

from .wire_reader import WireReader
from ..utils.basis_utils import (
    RIGHT_TO_LEFT_HANDED,
    change_basis_point,
    change_basis_rotation,
    cm_to_m,
    nearest_orthogonal,
    rotation_to_quat,
)


FORMAT_AXIS = 2
FORMAT_POSITION = 2
FORMAT_EXTRINSICS = 3

# Control packet sizes (bytes) by format tag for each protocol variant
PROTOCOL_CONTROL_SIZES = {
    "position": {FORMAT_POSITION: 28},
    "calibrated": {FORMAT_AXIS: 44, FORMAT_EXTRINSICS: 52},
}

DEFAULT_PROTOCOL = "position"


def default_pose() -> dict:
    """Pose before any control packet: origin, identity rotation, no FOV."""
    return {
        "position": np.zeros(3),
        "rotation": np.eye(3),
        "quaternion": np.array([1.0, 0.0, 0.0, 0.0]),
        "vertical_fov": None,
    }


def copy_pose(pose: dict) -> dict:
    return {
        "position": np.array(pose["position"], dtype=np.float64),
        "rotation": np.array(pose["rotation"], dtype=np.float64),
        "quaternion": np.array(pose["quaternion"], dtype=np.float64),
        "vertical_fov": pose["vertical_fov"],
    }


class PoseDecoder:
    """
    Stateful decoder for one protocol variant.

    Holds the current pose and the change-of-basis matrix. For the
    "position" variant the matrix is fixed. For the "calibrated" variant it
    is taken from the first axis packet; extrinsics that arrive before that
    are transformed with the identity.

    Example usage:
        decoder = PoseDecoder(protocol="position")
        if decoder.decode(datagram):
            pose = decoder.pose()
            print(pose["position"])

    Pose format:
        {
            "position": ndarray (3,),        # Meters, target frame
            "rotation": ndarray (3, 3),      # Rotation matrix, target frame
            "quaternion": ndarray (4,),      # Same rotation as (w, x, y, z)
            "vertical_fov": float or None,   # Degrees, from the axis packet
        }
    """

    def __init__(self, protocol: str = DEFAULT_PROTOCOL, verbose: bool = False):
        """
        Initialize the decoder.

        Args:
            protocol: Protocol variant ("position" or "calibrated")
            verbose: Print decode diagnostics
        """
        if protocol not in PROTOCOL_CONTROL_SIZES:
            raise ValueError(f"Unknown protocol: {protocol}. "
                             f"Supported: {list(PROTOCOL_CONTROL_SIZES.keys())}")
        self.protocol = protocol
        self.verbose = verbose
        self.sizes = PROTOCOL_CONTROL_SIZES[protocol]
        self.reset()

    def reset(self):
        """Forget the pose and, for the calibrated variant, the calibration."""
        self._pose = default_pose()
        if self.protocol == "position":
            self.basis = RIGHT_TO_LEFT_HANDED.copy()
            self.calibrated = True
        else:
            self.basis = np.eye(3)
            self.calibrated = False

    def control_size(self, format_tag: int):
        """Fixed datagram size for a control format tag, or None if unknown."""
        return self.sizes.get(format_tag)

    def is_control(self, format_tag: int, length: int) -> bool:
        return self.sizes.get(format_tag) == length

    def pose(self) -> dict:
        """Copy of the current pose."""
        return copy_pose(self._pose)

    def decode(self, data) -> bool:
        """
        Decode one control datagram into the current pose.

        Args:
            data: Complete datagram, including the format tag

        Returns:
            True if the pose changed, False if the datagram was not a
            recognized control packet for this variant.

        Raises:
            OutOfRangeError: If a field runs past the end of the datagram
        """
        reader = WireReader(data)
        format_tag = reader.read_uint32()
        if not self.is_control(format_tag, len(data)):
            return False

        if self.protocol == "position":
            return self._decode_position(reader)
        if format_tag == FORMAT_AXIS:
            return self._decode_axis(reader)
        return self._decode_extrinsics(reader)

    def _reject_non_finite(self, what, *values) -> bool:
        if all(np.isfinite(v).all() for v in values):
            return False
        if self.verbose:
            print(f"[PoseDecoder] Rejected {what} packet with non-finite values")
        return True

    def _decode_position(self, reader) -> bool:
        x, y, z = reader.read_doubles(3)
        if self._reject_non_finite("position", np.array([x, y, z])):
            return False
        p = change_basis_point(self.basis, cm_to_m([x, y, z]))
        self._pose["position"] = p
        if self.verbose:
            print(f"[PoseDecoder] Camera pos x={x / 100.0:.3f}m y={y / 100.0:.3f}m z={z / 100.0:.3f}m")
        return True

    def _decode_axis(self, reader) -> bool:
        axes = np.array(reader.read_floats(9), dtype=np.float64).reshape(3, 3)
        fov = reader.read_float32()
        if self._reject_non_finite("axis", axes, np.array(fov)):
            return False
        if not self.calibrated:
            try:
                self.basis = nearest_orthogonal(axes)
            except ValueError as e:
                if self.verbose:
                    print(f"[PoseDecoder] Rejected axis basis: {e}")
                return False
            self.calibrated = True
            if self.verbose:
                print(f"[PoseDecoder] Calibrated, det(C)={np.linalg.det(self.basis):+.3f}")
        self._pose["vertical_fov"] = float(fov)
        return True

    def _decode_extrinsics(self, reader) -> bool:
        rot = np.array(reader.read_floats(9), dtype=np.float64).reshape(3, 3)
        t = cm_to_m(reader.read_floats(3))
        if self._reject_non_finite("extrinsics", rot, t):
            return False
        if self.verbose and not self.calibrated:
            print("[PoseDecoder] Extrinsics before calibration, using identity basis")
        rot_t = change_basis_rotation(self.basis, rot)
        # Raises ValueError on a degenerate matrix before anything is stored.
        quat = rotation_to_quat(rot_t)
        self._pose["rotation"] = rot_t
        self._pose["quaternion"] = quat
        self._pose["position"] = change_basis_point(self.basis, t)
        return True
