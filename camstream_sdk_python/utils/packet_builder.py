"""
Packet builders for the camera stream protocol (sender side).

Used by the example sender and the tests to produce datagrams in exactly the
layout the receiver expects. All fields are big-endian.
"""

import struct


FORMAT_FRAME = 1
FORMAT_AXIS = 2
FORMAT_POSITION = 2
FORMAT_EXTRINSICS = 3

DEFAULT_CHUNK_SIZE = 1200


def frame_header(frame_id: int, num_chunks: int) -> bytes:
    """format(u32=1) | frame_id(u32) | num_chunks(i32) -> 12 bytes"""
    return struct.pack(">IIi", FORMAT_FRAME, frame_id, num_chunks)


def frame_chunk(frame_id: int, seq: int, payload: bytes, format_tag: int = FORMAT_FRAME) -> bytes:
    """format(u32) | frame_id(u32) | seq(i32) | payload"""
    return struct.pack(">IIi", format_tag, frame_id, seq) + bytes(payload)


def split_frame(frame_id: int, data: bytes, chunk_size: int = DEFAULT_CHUNK_SIZE):
    """
    Split encoded frame bytes into a header and ordered chunk datagrams.

    Args:
        frame_id: Id written into the header and every chunk
        data: Encoded image bytes (must not be empty)
        chunk_size: Maximum payload bytes per chunk

    Returns:
        List of datagrams: [header, chunk 0, chunk 1, ...]
    """
    if not data:
        raise ValueError("Cannot split an empty frame")
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    parts = [data[i:i + chunk_size] for i in range(0, len(data), chunk_size)]
    packets = [frame_header(frame_id, len(parts))]
    for seq, part in enumerate(parts):
        packets.append(frame_chunk(frame_id, seq, part))
    return packets


def position_packet(x_cm: float, y_cm: float, z_cm: float) -> bytes:
    """format(u32=2) | x, y, z (f64, cm) -> 28 bytes"""
    return struct.pack(">I3d", FORMAT_POSITION, x_cm, y_cm, z_cm)


def axis_packet(axes, vertical_fov: float) -> bytes:
    """format(u32=2) | 9 x f32 axis basis (row-major) | f32 vertical FOV -> 44 bytes"""
    flat = [float(v) for row in axes for v in row]
    if len(flat) != 9:
        raise ValueError(f"Axis basis must have 9 values, got {len(flat)}")
    return struct.pack(">I9ff", FORMAT_AXIS, *flat, vertical_fov)


def extrinsics_packet(rotation, translation_cm) -> bytes:
    """format(u32=3) | 9 x f32 rotation (row-major) | 3 x f32 translation (cm) -> 52 bytes"""
    flat = [float(v) for row in rotation for v in row]
    t = [float(v) for v in translation_cm]
    if len(flat) != 9 or len(t) != 3:
        raise ValueError("Extrinsics need a 3x3 rotation and a 3-vector translation")
    return struct.pack(">I9f3f", FORMAT_EXTRINSICS, *flat, *t)
