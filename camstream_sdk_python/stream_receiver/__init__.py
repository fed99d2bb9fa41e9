"""
StreamReceiver - Real-time camera frame and pose receiver over UDP.

Example usage:
    from camstream_sdk_python.stream_receiver import StreamReceiver

    receiver = StreamReceiver(port=12345)
    receiver.start()

    while running:
        latest = receiver.get_latest()
        if latest["frame"]:
            print(f"Frame {latest['frame_id']}: {len(latest['frame'])} bytes")
        print(f"Camera at {latest['pose']['position']}")

    receiver.stop()

Wire format (big-endian):
    Frame header:   format=1 | frame_id(u32) | num_chunks(i32)
    Frame chunk:    format=1 | frame_id(u32) | seq(i32) | payload
    Position:       format=2 | x, y, z (f64, cm)                 ("position" protocol)
    Axis basis:     format=2 | 9 x f32 axes | f32 vertical FOV   ("calibrated" protocol)
    Extrinsics:     format=3 | 9 x f32 rotation | 3 x f32 cm     ("calibrated" protocol)
"""

from .datagram_source import UdpDatagramSource
from .frame_reassembler import FrameReassembler
from .pose_decoder import PoseDecoder
from .shared_state import SharedState
from .sinks import CallbackFrameSink, CallbackPoseSink, FrameSink, PoseSink
from .stream_receiver import StreamReceiver
from .wire_reader import OutOfRangeError, WireReader

__all__ = [
    "StreamReceiver",
    "UdpDatagramSource",
    "FrameReassembler",
    "PoseDecoder",
    "SharedState",
    "FrameSink",
    "PoseSink",
    "CallbackFrameSink",
    "CallbackPoseSink",
    "WireReader",
    "OutOfRangeError",
]
