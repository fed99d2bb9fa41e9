#!/usr/bin/env python3
"""
Example: Send a test camera stream over UDP.

Sends a frame (a file, or generated bytes) split into chunks, followed by a
camera control packet, at a fixed rate. Pair with receive_stream.py.

Usage:
    python send_test_stream.py --port 12345
    python send_test_stream.py --port 12345 --file image.jpg --fps 30
    python send_test_stream.py --port 12345 --protocol calibrated
"""

import argparse
import math
import os
import random
import socket
import sys
import time

_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _root not in sys.path:
    sys.path.insert(0, _root)

import numpy as np
from scipy.spatial.transform import Rotation as R

from camstream_sdk_python.utils import (
    axis_packet,
    extrinsics_packet,
    position_packet,
    split_frame,
)

# Target x = source x, target y = source y, target z = -source z
CALIBRATION_AXES = [
    [1.0, 0.0, 0.0],
    [0.0, 1.0, 0.0],
    [0.0, 0.0, -1.0],
]


def main():
    parser = argparse.ArgumentParser(description="Send a test camera stream over UDP")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="Receiver address")
    parser.add_argument("--port", type=int, default=12345, help="Receiver UDP port (default: 12345)")
    parser.add_argument("--protocol", choices=["position", "calibrated"], default="position")
    parser.add_argument("--fps", type=float, default=15.0, help="Frames per second (default: 15)")
    parser.add_argument("--chunk_size", type=int, default=1200, help="Payload bytes per chunk")
    parser.add_argument("--file", type=str, default=None, help="Encoded image to send repeatedly")
    parser.add_argument("--shuffle", action="store_true", default=False,
                        help="Send chunks in random order")
    args = parser.parse_args()

    if args.file:
        with open(args.file, "rb") as f:
            payload = f.read()
    else:
        payload = None

    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    addr = (args.host, args.port)
    period = 1.0 / args.fps
    frame_id = 0
    t_start = time.time()

    print(f"[Sender] Sending to {args.host}:{args.port} ({args.protocol} protocol)")

    try:
        if args.protocol == "calibrated":
            sock.sendto(axis_packet(CALIBRATION_AXES, 60.0), addr)

        while True:
            t = time.time() - t_start
            data = payload if payload else f"frame {frame_id} t={t:.3f}".encode() * 200
            packets = split_frame(frame_id, data, args.chunk_size)
            header, chunks = packets[0], packets[1:]
            if args.shuffle:
                random.shuffle(chunks)
            sock.sendto(header, addr)
            for pkt in chunks:
                sock.sendto(pkt, addr)

            # Camera orbits the origin at 1 m, in centimeters on the wire
            x_cm = 100.0 * math.cos(t)
            y_cm = 100.0 * math.sin(t)
            if args.protocol == "position":
                sock.sendto(position_packet(x_cm, y_cm, 50.0), addr)
            else:
                rot = R.from_euler("z", t).as_matrix()
                sock.sendto(extrinsics_packet(rot, np.array([x_cm, y_cm, 50.0])), addr)

            frame_id = (frame_id + 1) & 0xFFFFFFFF
            time.sleep(period)

    except KeyboardInterrupt:
        print("\n[Sender] Stopped")
    finally:
        sock.close()


if __name__ == "__main__":
    main()
