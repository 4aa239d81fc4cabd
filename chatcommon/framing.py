"""
Message boundaries on the TCP byte stream.

RawFraming is what the existing chat server speaks: payloads go out with no
header and every socket read is taken as one message, so two messages that
arrive in the same read are seen as one. LengthPrefixedFraming puts a
4-byte big-endian length in front of each payload and reassembles reads:

    [u32_be length] [payload ...]
"""
import struct
from typing import List

from chatcommon.errors import FramingError

HEADER = struct.Struct(">I")
MAX_FRAME = 1024 * 1024   # 1 MiB


class RawDecoder:
    pending = 0

    def feed(self, chunk: bytes) -> List[bytes]:
        return [bytes(chunk)] if chunk else []


class RawFraming:
    name = "raw"

    def encode(self, payload: bytes) -> bytes:
        return payload

    def decoder(self) -> RawDecoder:
        return RawDecoder()


class LengthPrefixedDecoder:
    def __init__(self, max_size: int = MAX_FRAME):
        self.max_size = max_size
        self._buf = bytearray()   # residual bytes of an incomplete frame

    @property
    def pending(self) -> int:
        return len(self._buf)

    def feed(self, chunk: bytes) -> List[bytes]:
        '''
        Add a chunk read from the socket and return every frame it completes.
        A chunk may hold part of a frame, exactly one, or several.
        '''
        self._buf.extend(chunk)
        frames = []
        while len(self._buf) >= HEADER.size:
            (length,) = HEADER.unpack_from(self._buf)
            if length > self.max_size:
                raise FramingError(f"frame of {length} bytes exceeds limit of {self.max_size}")
            end = HEADER.size + length
            if len(self._buf) < end:
                break   # wait for the rest of this frame
            frames.append(bytes(self._buf[HEADER.size:end]))
            del self._buf[:end]
        return frames


class LengthPrefixedFraming:
    name = "length-prefixed"

    def __init__(self, max_size: int = MAX_FRAME):
        self.max_size = max_size

    def encode(self, payload: bytes) -> bytes:
        if len(payload) > self.max_size:
            raise FramingError(f"payload of {len(payload)} bytes exceeds limit of {self.max_size}")
        return HEADER.pack(len(payload)) + payload

    def decoder(self) -> LengthPrefixedDecoder:
        return LengthPrefixedDecoder(self.max_size)
