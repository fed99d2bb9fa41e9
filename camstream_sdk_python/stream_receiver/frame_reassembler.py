"""
FrameReassembler - Collects the chunks of one image frame at a time.

A frame is announced by a header datagram carrying its id and chunk count,
then arrives as chunks tagged with (frame id, seq). Only one frame is ever
in flight: a new header always supersedes the current one, and a frame that
is still incomplete when the frame timeout elapses is dropped. Partial frames
are never returned.
"""

import time


FORMAT_FRAME = 1

IDLE = "idle"
COLLECTING = "collecting"


class FrameReassembler:
    """
    Single in-flight frame state machine.

    Timestamps are monotonic seconds (time.monotonic by default). Every event
    method takes an optional `now` so callers and tests can drive the clock.

    Example usage:
        reassembler = FrameReassembler(frame_timeout_ms=1500)
        reassembler.on_header(7, 3)
        reassembler.on_chunk(FORMAT_FRAME, 7, 1, b"BB")
        reassembler.on_chunk(FORMAT_FRAME, 7, 0, b"AA")
        done = reassembler.on_chunk(FORMAT_FRAME, 7, 2, b"CC")
        # done == (7, b"AABBCC")
    """

    def __init__(self, frame_timeout_ms: float = 1500, clock=time.monotonic, verbose: bool = False):
        if frame_timeout_ms <= 0:
            raise ValueError(f"frame_timeout_ms must be positive, got {frame_timeout_ms}")
        self.frame_timeout_s = frame_timeout_ms / 1000.0
        self.clock = clock
        self.verbose = verbose

        self.state = IDLE
        self.frame_id = None
        self.expected = 0
        self.chunks = {}
        self.t0 = 0.0

        self.frames_completed = 0
        self.frames_abandoned = 0
        self.frames_superseded = 0
        self.chunks_ignored = 0
        self.duplicate_chunks = 0

    def _now(self, now):
        return self.clock() if now is None else now

    def _clear(self):
        self.state = IDLE
        self.frame_id = None
        self.expected = 0
        self.chunks = {}
        self.t0 = 0.0

    def reset(self):
        """Drop any in-flight frame and zero the counters."""
        self._clear()
        self.frames_completed = 0
        self.frames_abandoned = 0
        self.frames_superseded = 0
        self.chunks_ignored = 0
        self.duplicate_chunks = 0

    @property
    def collecting(self) -> bool:
        return self.state == COLLECTING

    def remaining_ms(self, now=None):
        """Milliseconds left before the in-flight frame times out, or None when idle."""
        if self.state != COLLECTING:
            return None
        elapsed = self._now(now) - self.t0
        return max(0.0, (self.frame_timeout_s - elapsed) * 1000.0)

    def expire(self, now=None) -> bool:
        """
        Abandon the in-flight frame if it has exceeded the frame timeout.

        Returns:
            True if a frame was abandoned.
        """
        if self.state != COLLECTING:
            return False
        if self._now(now) - self.t0 <= self.frame_timeout_s:
            return False
        if self.verbose:
            print(f"[FrameReassembler] Frame {self.frame_id} timed out with "
                  f"{len(self.chunks)}/{self.expected} chunks")
        self.frames_abandoned += 1
        self._clear()
        return True

    def on_header(self, frame_id: int, expected: int, now=None) -> bool:
        """
        Handle a frame header.

        Args:
            frame_id: Id of the announced frame
            expected: Number of chunks the frame is split into
            now: Monotonic timestamp of arrival (defaults to the clock)

        Returns:
            True if a new frame started collecting.
        """
        now = self._now(now)
        self.expire(now)
        # Any header ends the in-flight frame, even one that starts nothing.
        if self.state == COLLECTING:
            if self.verbose:
                print(f"[FrameReassembler] Frame {self.frame_id} superseded by frame {frame_id} "
                      f"with {len(self.chunks)}/{self.expected} chunks")
            self.frames_superseded += 1
            self._clear()
        if expected <= 0:
            if self.verbose:
                print(f"[FrameReassembler] Ignoring header for frame {frame_id} "
                      f"with chunk count {expected}")
            return False
        self.state = COLLECTING
        self.frame_id = frame_id
        self.expected = expected
        self.chunks = {}
        self.t0 = now
        return True

    def on_chunk(self, format_tag: int, frame_id: int, seq: int, payload, now=None):
        """
        Handle a frame chunk.

        Chunks for another format or another frame id are stragglers or
        foreign traffic and are ignored. A seq seen before is a no-op.

        Returns:
            (frame_id, frame_bytes) when this chunk completes the frame,
            None otherwise.
        """
        self.expire(now)
        if self.state != COLLECTING or format_tag != FORMAT_FRAME or frame_id != self.frame_id:
            self.chunks_ignored += 1
            return None
        if seq < 0 or seq >= self.expected:
            self.chunks_ignored += 1
            if self.verbose:
                print(f"[FrameReassembler] Chunk seq {seq} outside [0, {self.expected}) "
                      f"for frame {frame_id}")
            return None
        if seq in self.chunks:
            self.duplicate_chunks += 1
            return None

        self.chunks[seq] = bytes(payload)
        if len(self.chunks) < self.expected:
            return None
        return self._complete()

    def _complete(self):
        chunks = self.chunks
        frame_id = self.frame_id
        missing = [i for i in range(self.expected) if i not in chunks]
        if missing:
            if self.verbose:
                print(f"[FrameReassembler] Frame {frame_id} missing chunks {missing[:8]}")
            self.frames_abandoned += 1
            self._clear()
            return None
        data = b"".join(chunks[i] for i in range(self.expected))
        self.frames_completed += 1
        self._clear()
        return frame_id, data

    def stats(self) -> dict:
        return {
            "frames_completed": self.frames_completed,
            "frames_abandoned": self.frames_abandoned,
            "frames_superseded": self.frames_superseded,
            "chunks_ignored": self.chunks_ignored,
            "duplicate_chunks": self.duplicate_chunks,
        }
