"""
Utility functions for the camera stream.

This module provides:
    - basis_utils: Change-of-basis and rotation helpers
    - packet_builder: Sender-side datagram encoding
"""

from .basis_utils import (
    RIGHT_TO_LEFT_HANDED,
    change_basis_point,
    change_basis_rotation,
    nearest_orthogonal,
    rotation_to_quat,
)
from .packet_builder import (
    axis_packet,
    extrinsics_packet,
    frame_chunk,
    frame_header,
    position_packet,
    split_frame,
)

__all__ = [
    "RIGHT_TO_LEFT_HANDED",
    "change_basis_point",
    "change_basis_rotation",
    "nearest_orthogonal",
    "rotation_to_quat",
    "axis_packet",
    "extrinsics_packet",
    "frame_chunk",
    "frame_header",
    "position_packet",
    "split_frame",
]
