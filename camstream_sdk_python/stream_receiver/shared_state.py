"""
SharedState - Latest frame and pose handed from the receive thread to the consumer.

Keeps no history: each publish replaces the previous value. A single lock
guards every field, so a reader always sees values written by one complete
publish call.
"""

import threading

from .pose_decoder import copy_pose, default_pose


class SharedState:
    """
    Latest-wins store for one frame and one pose.

    Writers: the receive thread (publish_frame / publish_pose).
    Readers: the consumer (latest_frame_bytes / latest_pose / snapshot).
    """

    def __init__(self):
        self.lock = threading.Lock()
        self.frame_bytes = b""
        self.frame_id = None
        self.frame_seq = 0
        self.pose = default_pose()

    def reset(self):
        with self.lock:
            self.frame_bytes = b""
            self.frame_id = None
            self.frame_seq = 0
            self.pose = default_pose()

    def publish_frame(self, frame_id: int, data: bytes):
        """Replace the latest frame. `frame_seq` counts publishes."""
        data = bytes(data)
        with self.lock:
            self.frame_bytes = data
            self.frame_id = frame_id
            self.frame_seq += 1

    def publish_pose(self, pose: dict):
        """Replace the latest pose with a copy of `pose`."""
        pose = copy_pose(pose)
        with self.lock:
            self.pose = pose

    def latest_frame_bytes(self) -> bytes:
        with self.lock:
            return self.frame_bytes

    def latest_pose(self) -> dict:
        with self.lock:
            pose = self.pose
        # Published poses are never mutated, so copying outside the lock is safe.
        return copy_pose(pose)

    def snapshot(self) -> dict:
        """
        Read frame and pose together.

        Returns:
            {
                "frame": bytes,           # Latest completed frame (b"" if none)
                "frame_id": int or None,  # Wire id of that frame
                "frame_seq": int,         # Number of frames published so far
                "pose": dict,             # Latest pose (see PoseDecoder)
            }
        """
        with self.lock:
            frame = self.frame_bytes
            frame_id = self.frame_id
            frame_seq = self.frame_seq
            pose = self.pose
        return {
            "frame": frame,
            "frame_id": frame_id,
            "frame_seq": frame_seq,
            "pose": copy_pose(pose),
        }
