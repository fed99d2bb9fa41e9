"""
Consumer-side sinks for frames and poses.

Whatever displays the stream (a texture upload, a file writer, a window)
implements these two methods; StreamReceiver.update() calls them.
"""


class FrameSink:
    """Receives each newly completed frame's encoded bytes once."""

    def on_frame(self, data: bytes):
        raise NotImplementedError


class PoseSink:
    """Receives the latest pose on every update."""

    def on_pose(self, pose: dict):
        raise NotImplementedError


class CallbackFrameSink(FrameSink):
    def __init__(self, callback):
        self.callback = callback

    def on_frame(self, data: bytes):
        self.callback(data)


class CallbackPoseSink(PoseSink):
    def __init__(self, callback):
        self.callback = callback

    def on_pose(self, pose: dict):
        self.callback(pose)
