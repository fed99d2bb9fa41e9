#!/usr/bin/env python3
"""
Example: Receive camera frames and poses over UDP and print them.

This script demonstrates how to use the StreamReceiver class to receive the
chunked frame stream and camera control packets, print frame/pose updates,
and optionally write the latest frame to disk.

Usage:
    python receive_stream.py --port 12345
    python receive_stream.py --port 12345 --protocol calibrated --verbose
    python receive_stream.py --port 12345 --save_dir frames
"""

import argparse
import os
import sys
import time

# Allow running without installing the package (add project root to path)
_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _root not in sys.path:
    sys.path.insert(0, _root)

from camstream_sdk_python import FrameSink, PoseSink, StreamReceiver


class PrintingFrameSink(FrameSink):
    """Prints each frame and optionally overwrites <save_dir>/latest.jpg."""

    def __init__(self, save_dir=None):
        self.save_dir = save_dir
        self.count = 0
        if save_dir:
            os.makedirs(save_dir, exist_ok=True)

    def on_frame(self, data: bytes):
        self.count += 1
        print(f"[Frame] {len(data)} bytes")
        if self.save_dir:
            path = os.path.join(self.save_dir, "latest.jpg")
            with open(path, "wb") as f:
                f.write(data)


class PrintingPoseSink(PoseSink):
    """Prints the pose when it changes."""

    def __init__(self):
        self.last = None

    def on_pose(self, pose: dict):
        key = (tuple(pose["position"]), tuple(pose["quaternion"]), pose["vertical_fov"])
        if key == self.last:
            return
        self.last = key
        p = pose["position"]
        q = pose["quaternion"]
        fov = pose["vertical_fov"]
        fov_str = f"{fov:.1f}" if fov is not None else "-"
        print(f"[Pose] pos=({p[0]:7.3f}, {p[1]:7.3f}, {p[2]:7.3f}) "
              f"rot=({q[0]:6.3f}, {q[1]:6.3f}, {q[2]:6.3f}, {q[3]:6.3f}) fov={fov_str}")


def main():
    parser = argparse.ArgumentParser(description="Receive camera frames and poses over UDP")

    parser.add_argument(
        "--port",
        type=int,
        default=12345,
        help="UDP port to listen on (default: 12345)",
    )

    parser.add_argument(
        "--protocol",
        choices=["position", "calibrated"],
        default="position",
        help="Control packet variant (default: position)",
    )

    parser.add_argument(
        "--socket_timeout_ms",
        type=int,
        default=2000,
        help="Socket receive timeout in ms (default: 2000)",
    )

    parser.add_argument(
        "--frame_timeout_ms",
        type=int,
        default=1500,
        help="Time allowed to collect one frame in ms (default: 1500)",
    )

    parser.add_argument(
        "--tick_hz",
        type=float,
        default=60.0,
        help="Consumer update rate (default: 60)",
    )

    parser.add_argument(
        "--save_dir",
        type=str,
        default=None,
        help="Write the latest frame to <save_dir>/latest.jpg",
    )

    parser.add_argument(
        "--print_rate",
        action="store_true",
        default=False,
        help="Print receive rate statistics",
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Print dropped datagrams and abandoned frames",
    )

    args = parser.parse_args()

    print(f"[Main] Initializing StreamReceiver on port {args.port}...")
    receiver = StreamReceiver(
        port=args.port,
        socket_timeout_ms=args.socket_timeout_ms,
        frame_timeout_ms=args.frame_timeout_ms,
        protocol=args.protocol,
        verbose=args.verbose,
    )
    receiver.start()

    frame_sink = PrintingFrameSink(args.save_dir)
    pose_sink = PrintingPoseSink()
    period = 1.0 / args.tick_hz
    rate_start_time = time.time()
    rate_start_frames = 0
    rate_display_interval = 2.0

    print("[Main] Press Ctrl+C to stop")

    try:
        while True:
            receiver.update(frame_sink, pose_sink)

            if args.print_rate:
                current_time = time.time()
                if current_time - rate_start_time >= rate_display_interval:
                    fps = (frame_sink.count - rate_start_frames) / (current_time - rate_start_time)
                    stats = receiver.get_stats()
                    print(f"[Main] Frame rate: {fps:.1f} fps, "
                          f"UDP receive rate: {receiver.get_receive_rate():.1f} Hz, "
                          f"abandoned: {stats['frames_abandoned']}, "
                          f"superseded: {stats['frames_superseded']}")
                    rate_start_time = current_time
                    rate_start_frames = frame_sink.count

            time.sleep(period)

    except KeyboardInterrupt:
        print("\n[Main] Stopping...")
    finally:
        receiver.stop()
        print("[Main] Done")


if __name__ == "__main__":
    main()
