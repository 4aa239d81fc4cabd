import enum, logging, threading, time
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from chatcommon.connection import Connection
from chatcommon.crypto import AeadCodec
from chatcommon.errors import (AuthenticationFailed, ChatError, MalformedEnvelope,
                               SessionStateError, TransportDecodeError)
from chatcommon.framing import RawFraming

logger = logging.getLogger(__name__)

HANDSHAKE = "handshake"      # control message announcing the client (and its key mode)
NAME_PREFIX = "name "        # control message registering the display name
DEFAULT_HANDSHAKE_DELAY = 1.0

# per-message failures: reported for that message, the loop keeps going
MESSAGE_ERRORS = (TransportDecodeError, MalformedEnvelope, AuthenticationFailed)


class HandshakeState(enum.Enum):
    NOT_STARTED = "not-started"
    KEY_SENT = "key-sent"
    NAME_SENT = "name-sent"
    SKIPPED = "skipped"
    READY = "ready"


_NEXT = {
    HandshakeState.NOT_STARTED: (HandshakeState.KEY_SENT, HandshakeState.SKIPPED),
    HandshakeState.KEY_SENT: (HandshakeState.NAME_SENT,),
    HandshakeState.NAME_SENT: (HandshakeState.READY,),
    HandshakeState.SKIPPED: (HandshakeState.READY,),
    HandshakeState.READY: (),
}


@dataclass(frozen=True)
class Delivery:
    ''' One inbound message: the decoded text, or the error that stopped it '''
    text: Optional[str]
    error: Optional[ChatError] = None
    raw: bytes = b""

    @property
    def ok(self) -> bool:
        return self.error is None


class ChatSession:
    '''
    Handshake and message exchange over one Connection.

    The input side calls start() and send_chat(); the receive side iterates
    receive_loop() on its own thread. The two only share the connection
    (through its send and receive views) and the codec, which is read-only.
    '''
    def __init__(self, connection: Connection, codec: Optional[AeadCodec] = None,
                 framing=None, handshake_delay: float = DEFAULT_HANDSHAKE_DELAY,
                 sleep: Callable[[float], None] = time.sleep):
        self.connection = connection
        self.codec = codec
        self.framing = framing or RawFraming()
        self.handshake_delay = handshake_delay
        self._sleep = sleep
        self._sender = connection.sender
        self._receiver = connection.receiver
        self._write_lock = threading.Lock()   # one payload on the wire at a time
        self._state = HandshakeState.NOT_STARTED

    @property
    def state(self) -> HandshakeState:
        return self._state

    @property
    def encrypted(self) -> bool:
        return self.codec is not None

    def _advance(self, new: HandshakeState):
        if new not in _NEXT[self._state]:
            raise SessionStateError(f"cannot go from {self._state.value} to {new.value}")
        logger.debug("Handshake %s -> %s", self._state.value, new.value)
        self._state = new

    def start(self, display_name: str, skip_handshake: bool = False) -> None:
        '''
        Run the handshake: "handshake", a fixed pause, then "name <display_name>".
        The server does not acknowledge either message, so the pause is the only
        thing ordering them behind the server's processing.
        Input:
            - display_name: name registered with the server
            - skip_handshake: send nothing and go straight to READY
        '''
        if self._state is not HandshakeState.NOT_STARTED:
            raise SessionStateError("session already started")
        if skip_handshake:
            self._advance(HandshakeState.SKIPPED)
            self._advance(HandshakeState.READY)
            return
        if not display_name:
            raise ValueError("display name must not be empty")

        self._send_text(HANDSHAKE)
        self._advance(HandshakeState.KEY_SENT)
        if self.handshake_delay > 0:
            self._sleep(self.handshake_delay)
        self._send_text(NAME_PREFIX + display_name)
        self._advance(HandshakeState.NAME_SENT)
        self._advance(HandshakeState.READY)
        logger.info("Handshake done (%s)", "encrypted" if self.encrypted else "plaintext")

    def send_chat(self, text: str) -> None:
        ''' Send one chat line; empty text sends nothing '''
        if not text:
            return
        if self._state is not HandshakeState.READY:
            raise SessionStateError(f"session is not ready ({self._state.value})")
        self._send_text(text)

    def encode(self, text: str) -> bytes:
        ''' Wire payload for text: UTF-8 bytes, or the transport text of its envelope '''
        if self.codec is not None:
            return self.codec.seal(text).encode("ascii")
        return text.encode("utf-8")

    def _send_text(self, text: str):
        data = self.framing.encode(self.encode(text))
        with self._write_lock:
            self._sender.send(data)

    def decode(self, unit: bytes) -> Delivery:
        ''' Turn one inbound unit into a Delivery; per-message failures are not raised '''
        if self.codec is None:
            return Delivery(unit.decode("utf-8", errors="replace"), raw=unit)
        try:
            return Delivery(self.codec.open(unit), raw=unit)
        except MESSAGE_ERRORS as exc:
            logger.warning("Discarded inbound message (%d bytes): %s", len(unit), exc)
            return Delivery(None, exc, unit)

    def receive_loop(self) -> Iterator[Delivery]:
        '''
        Yield a Delivery for every inbound message until the peer closes the
        stream. TransportError and FramingError end the iteration by propagating.
        '''
        decoder = self.framing.decoder()
        while True:
            chunk = self._receiver.receive()
            if not chunk:
                if decoder.pending:
                    logger.warning("Stream ended inside a frame, %d bytes dropped", decoder.pending)
                return
            for unit in decoder.feed(chunk):
                if unit:
                    yield self.decode(unit)

    def close(self) -> None:
        self.connection.close()
