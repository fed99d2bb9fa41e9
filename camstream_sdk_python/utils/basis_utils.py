"""
Change-of-basis utilities for camera poses.

The sender works in a right-handed frame, the consumer in a left-handed,
Y-up frame. A change-of-basis matrix C (orthogonal, det -1 for a handedness
flip) maps source coordinates to target coordinates:

    p' = C @ p
    R' = C @ R @ C.T

Quaternions are in (w, x, y, z) format unless otherwise specified.
"""

import numpy as np
from scipy.spatial.transform import Rotation as R


CM_PER_METER = 100.0

# Source (x, y, z) -> target (x, -z, -y). Mirrors the handedness.
RIGHT_TO_LEFT_HANDED = np.array([
    [1.0, 0.0, 0.0],
    [0.0, 0.0, -1.0],
    [0.0, -1.0, 0.0],
])


def cm_to_m(v):
    """
    Convert centimeters to meters.

    Args:
        v: Scalar or array in centimeters

    Returns:
        Value(s) in meters as float64
    """
    return np.asarray(v, dtype=np.float64) / CM_PER_METER


def nearest_orthogonal(m):
    """
    Project a 3x3 matrix onto the closest orthogonal matrix (Frobenius norm).

    Uses the SVD m = U S Vt and returns U Vt, which keeps the sign of the
    determinant of m, so a reflection stays a reflection.

    Args:
        m: 3x3 array-like

    Returns:
        Orthogonal 3x3 matrix

    Raises:
        ValueError: If m is not 3x3, not finite, or (numerically) singular
    """
    m = np.asarray(m, dtype=np.float64)
    if m.shape != (3, 3):
        raise ValueError(f"Expected a 3x3 matrix, got shape {m.shape}")
    # LAPACK does not return on inf input.
    if not np.isfinite(m).all():
        raise ValueError("Axis basis has non-finite values")
    u, s, vt = np.linalg.svd(m)
    if s[-1] < 1e-6 * max(s[0], 1e-12):
        raise ValueError("Axis basis is singular")
    return u @ vt


def is_orthonormal(m, atol=1e-6):
    """True if m.T is the inverse of m within `atol`."""
    m = np.asarray(m, dtype=np.float64)
    return bool(np.allclose(m.T @ m, np.eye(3), atol=atol))


def change_basis_rotation(c, rot):
    """
    Express a rotation matrix in another basis: C @ R @ C.T.

    Args:
        c: 3x3 orthogonal change-of-basis matrix
        rot: 3x3 rotation matrix in source coordinates

    Returns:
        3x3 rotation matrix in target coordinates
    """
    c = np.asarray(c, dtype=np.float64)
    return c @ np.asarray(rot, dtype=np.float64) @ c.T


def change_basis_point(c, p):
    """
    Map a point from source to target coordinates: C @ p.

    Args:
        c: 3x3 change-of-basis matrix
        p: 3D point in source coordinates

    Returns:
        3D point in target coordinates
    """
    return np.asarray(c, dtype=np.float64) @ np.asarray(p, dtype=np.float64)


def rotation_to_quat(rot):
    """
    Convert a rotation matrix to a unit quaternion (w, x, y, z).

    scipy returns (x, y, z, w); the result is reordered and the sign is
    chosen so that w >= 0. Raises ValueError if scipy rejects the matrix.
    """
    xyzw = R.from_matrix(np.asarray(rot, dtype=np.float64)).as_quat()
    q = np.array([xyzw[3], xyzw[0], xyzw[1], xyzw[2]])
    if q[0] < 0.0:
        q = -q
    return q


def quat_to_rotation(q):
    """Convert a (w, x, y, z) quaternion to a 3x3 rotation matrix."""
    w, x, y, z = q[0], q[1], q[2], q[3]
    return R.from_quat([x, y, z, w]).as_matrix()
