"""
CamStream SDK Python - UDP camera frame and pose receiver.

This package receives a camera stream sent over UDP as chunked image frames
plus camera control packets, and exposes the latest complete frame and the
latest camera pose (in a left-handed, Y-up frame) to a consumer loop.

Main classes:
    - StreamReceiver: Receives, reassembles and decodes the stream
    - FrameSink / PoseSink: Consumer-side interfaces fed by StreamReceiver.update()

Example usage:
    from camstream_sdk_python import StreamReceiver

    receiver = StreamReceiver(port=12345, protocol="position")
    receiver.start()

    # Main loop
    while app_running:
        jpeg = receiver.get_latest_frame_bytes()
        pose = receiver.get_latest_pose()
        # pose["position"] = camera position in meters
        # pose["rotation"] = 3x3 rotation matrix
        # pose["quaternion"] = (w, x, y, z)

    # Cleanup
    receiver.stop()
"""

from .stream_receiver import (
    CallbackFrameSink,
    CallbackPoseSink,
    FrameSink,
    PoseDecoder,
    PoseSink,
    StreamReceiver,
)

__version__ = "0.1.0"
__all__ = [
    "StreamReceiver",
    "PoseDecoder",
    "FrameSink",
    "PoseSink",
    "CallbackFrameSink",
    "CallbackPoseSink",
]
