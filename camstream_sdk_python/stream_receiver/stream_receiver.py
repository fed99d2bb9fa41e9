"""
StreamReceiver - Real-time camera frame and pose receiver over UDP.

This module provides the StreamReceiver class for receiving chunked image
frames and camera control packets from a sender over UDP. Datagrams are
received and decoded in a background thread; the latest complete frame and
the latest pose are exposed to a consumer polling at its own rate.
"""

import threading
import time

from .datagram_source import UdpDatagramSource
from .frame_reassembler import FORMAT_FRAME, FrameReassembler
from .pose_decoder import DEFAULT_PROTOCOL, PoseDecoder
from .shared_state import SharedState
from .wire_reader import read_int32_be, read_uint32_be


DEFAULT_PORT = 12345
DEFAULT_SOCKET_TIMEOUT_MS = 2000
DEFAULT_FRAME_TIMEOUT_MS = 1500
DEFAULT_JOIN_TIMEOUT_MS = 500

# format(4) + frame_id(4) + count/seq(4)
FRAME_HEADER_SIZE = 12
CHUNK_HEADER_SIZE = 12


class StreamReceiver:
    """
    Manages UDP reception, frame reassembly and pose decoding in a background thread.

    The data flow:
    1. A frame header announces a frame id and its chunk count
    2. Chunks for that frame arrive in any order and are collected
    3. Once all chunks are present the frame is joined and published
    4. Control packets update the camera pose, converted to the left-handed frame

    Only the latest frame and pose are kept. A frame that does not complete
    within `frame_timeout_ms`, or that is interrupted by a new header, is
    dropped.

    Example usage:
        receiver = StreamReceiver(port=12345)
        receiver.start()

        while running:
            jpeg = receiver.get_latest_frame_bytes()
            pose = receiver.get_latest_pose()
            print(f"{len(jpeg)} bytes, camera at {pose['position']}")

        receiver.stop()
    """

    def __init__(
        self,
        port: int = DEFAULT_PORT,
        socket_timeout_ms: float = DEFAULT_SOCKET_TIMEOUT_MS,
        frame_timeout_ms: float = DEFAULT_FRAME_TIMEOUT_MS,
        protocol: str = DEFAULT_PROTOCOL,
        host: str = "0.0.0.0",
        join_timeout_ms: float = DEFAULT_JOIN_TIMEOUT_MS,
        verbose: bool = False,
        source_factory=UdpDatagramSource,
        clock=time.monotonic,
    ):
        """
        Initialize the StreamReceiver.

        Args:
            port: UDP port to listen on (0 picks a free port on start)
            socket_timeout_ms: Longest single blocking receive
            frame_timeout_ms: Time allowed to collect all chunks of one frame
            protocol: Control packet variant ("position" or "calibrated")
            host: Address to bind
            join_timeout_ms: How long stop() waits for the receive thread
            verbose: Print per-datagram diagnostics
            source_factory: Callable (port, host) -> datagram source
            clock: Monotonic time source in seconds
        """
        _check_timeouts(socket_timeout_ms, frame_timeout_ms)
        self.port = port
        self.host = host
        self.socket_timeout_ms = socket_timeout_ms
        self.frame_timeout_ms = frame_timeout_ms
        self.join_timeout_ms = join_timeout_ms
        self.verbose = verbose
        self.source_factory = source_factory
        self.clock = clock

        self.thread = None
        self.source = None
        self.running = False
        self.state = SharedState()
        self.decoder = PoseDecoder(protocol=protocol, verbose=verbose)
        self.reassembler = FrameReassembler(frame_timeout_ms, clock=clock, verbose=verbose)
        self.datagrams_dropped = 0
        self._delivered_seq = 0
        self.recv_count = 0
        self.last_rate_time = clock()
        self.recv_rate_hz = 0.0

    @property
    def protocol(self) -> str:
        return self.decoder.protocol

    def reset(self):
        """Reset all internal state and buffers."""
        self.state.reset()
        self.decoder.reset()
        self.reassembler.reset()
        self.datagrams_dropped = 0
        self._delivered_seq = 0
        self.recv_count = 0
        self.last_rate_time = self.clock()
        self.recv_rate_hz = 0.0

    def start(self, port: int = None, socket_timeout_ms: float = None, frame_timeout_ms: float = None):
        """
        Bind the socket and start the receive thread.

        Arguments override the values given to the constructor. Socket
        errors (e.g. port in use) are raised here, not in the thread.
        """
        if self.is_running():
            return
        if self.source is not None:
            # Left over from a loop that ended on a socket error.
            self.source.close()
            self.source = None
        if port is not None:
            self.port = port
        if socket_timeout_ms is not None:
            self.socket_timeout_ms = socket_timeout_ms
        if frame_timeout_ms is not None:
            self.frame_timeout_ms = frame_timeout_ms
        _check_timeouts(self.socket_timeout_ms, self.frame_timeout_ms)

        # Each session owns its objects; a receive thread that outlived
        # stop() only ever writes to its own session.
        self.state = SharedState()
        self.decoder = PoseDecoder(protocol=self.protocol, verbose=self.verbose)
        self.reassembler = FrameReassembler(self.frame_timeout_ms, clock=self.clock, verbose=self.verbose)
        self.reset()
        source = self.source_factory(self.port, self.host)
        source.open()
        self.source = source
        self.port = source.port
        self.running = True
        self.thread = threading.Thread(
            target=self._udp_server_loop,
            args=(source, self.reassembler, self.decoder, self.state),
            daemon=True,
        )
        self.thread.start()
        print(f"[StreamReceiver] Listening on UDP port {self.port} ({self.protocol} protocol)")

    def stop(self):
        """Stop the receive thread. Safe to call more than once."""
        if not self.running and self.thread is None:
            return
        self.running = False
        if self.source is not None:
            self.source.close()
        thread = self.thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(self.join_timeout_ms / 1000.0)
            if thread.is_alive():
                print("[StreamReceiver] Receive thread did not exit in time, continuing shutdown")
        self.thread = None
        self.source = None
        print("[StreamReceiver] Stopped")

    def is_running(self) -> bool:
        thread = self.thread
        return self.running and thread is not None and thread.is_alive()

    def get_latest_frame_bytes(self) -> bytes:
        """
        Get the most recent complete frame.

        Returns:
            Encoded frame bytes exactly as sent, or b"" before the first frame.
        """
        return self.state.latest_frame_bytes()

    def get_latest_pose(self) -> dict:
        """
        Get the most recent camera pose.

        Returns:
            Pose dict with position, rotation, quaternion, vertical_fov.
        """
        return self.state.latest_pose()

    def get_latest(self) -> dict:
        """Frame, frame id, frame counter and pose from a single read."""
        return self.state.snapshot()

    def update(self, frame_sink=None, pose_sink=None) -> dict:
        """
        Push the latest state into consumer sinks.

        Call once per consumer tick. Each completed frame is delivered to
        `frame_sink` once; the pose is delivered to `pose_sink` every call.

        Returns:
            The snapshot that was delivered.
        """
        snap = self.state.snapshot()
        if frame_sink is not None and snap["frame_seq"] != self._delivered_seq:
            self._delivered_seq = snap["frame_seq"]
            frame_sink.on_frame(snap["frame"])
        if pose_sink is not None:
            pose_sink.on_pose(snap["pose"])
        return snap

    def get_receive_rate(self):
        """
        Get the current datagram receive rate.

        Returns:
            Receive rate in Hz (datagrams per second)
        """
        return self.recv_rate_hz

    def get_stats(self) -> dict:
        stats = self.reassembler.stats()
        stats["datagrams_dropped"] = self.datagrams_dropped
        stats["calibrated"] = self.decoder.calibrated
        return stats

    def _drop(self, data, reason):
        self.datagrams_dropped += 1
        if self.verbose:
            print(f"[StreamReceiver] Dropped {len(data)}-byte datagram: {reason}")

    def _handle_datagram(self, data, now=None, reassembler=None, decoder=None, state=None):
        """
        Classify one datagram by format tag and length and dispatch it.

        Frame tag with 12 bytes is a header, longer is a chunk. Control tags
        must match the variant's fixed size exactly. Everything else is dropped.
        """
        if now is None:
            now = self.clock()
        if reassembler is None:
            reassembler = self.reassembler
        if decoder is None:
            decoder = self.decoder
        if state is None:
            state = self.state
        n = len(data)
        if n < 4:
            self._drop(data, "too short")
            return
        format_tag = read_uint32_be(data, 0)

        if format_tag == FORMAT_FRAME:
            if n < CHUNK_HEADER_SIZE:
                self._drop(data, "shorter than chunk header")
                return
            frame_id = read_uint32_be(data, 4)
            if n == FRAME_HEADER_SIZE:
                reassembler.on_header(frame_id, read_int32_be(data, 8), now)
                return
            seq = read_int32_be(data, 8)
            done = reassembler.on_chunk(format_tag, frame_id, seq, memoryview(data)[CHUNK_HEADER_SIZE:], now)
            if done is not None:
                state.publish_frame(*done)
            return

        if decoder.is_control(format_tag, n):
            try:
                changed = decoder.decode(data)
            except ValueError as e:
                self._drop(data, f"bad control packet: {e}")
                return
            if changed:
                state.publish_pose(decoder.pose())
            return

        self._drop(data, f"unrecognized format {format_tag}")

    def _update_rate(self, now):
        self.recv_count += 1
        dt = now - self.last_rate_time
        if dt >= 1.0:
            self.recv_rate_hz = self.recv_count / dt
            self.recv_count = 0
            self.last_rate_time = now

    def _udp_server_loop(self, source, reassembler, decoder, state):
        """Background thread that receives datagrams and drives decoding."""
        try:
            while self.running and self.source is source:
                now = self.clock()
                reassembler.expire(now)
                wait_ms = self.socket_timeout_ms
                remaining = reassembler.remaining_ms(now)
                if remaining is not None:
                    wait_ms = min(wait_ms, remaining)

                try:
                    data = source.receive(wait_ms)
                except OSError as e:
                    if self.running:
                        print(f"[StreamReceiver] Socket error, receive loop ending: {e}")
                    break
                if data is None:
                    continue
                if not self.running:
                    break

                now = self.clock()
                self._update_rate(now)
                try:
                    self._handle_datagram(data, now, reassembler, decoder, state)
                except Exception as e:
                    print(f"[StreamReceiver] Error handling {len(data)}-byte datagram: {e}")
                    continue
        finally:
            source.close()


def _check_timeouts(socket_timeout_ms, frame_timeout_ms):
    if socket_timeout_ms <= 0:
        raise ValueError(f"socket_timeout_ms must be positive, got {socket_timeout_ms}")
    if frame_timeout_ms <= 0:
        raise ValueError(f"frame_timeout_ms must be positive, got {frame_timeout_ms}")
