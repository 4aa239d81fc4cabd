import logging, threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Union

from chatcommon.connection import Connection
from chatcommon.errors import ChatError
from chatcommon.protocol import ChatSession, Delivery

from .config import ClientConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Disconnected:
    ''' Last event of a session: None for a clean close, else the error that ended it '''
    reason: Optional[ChatError] = None

    @property
    def text(self) -> str:
        return "Disconnected." if self.reason is None else f"Disconnected: {self.reason}"


Event = Union[Delivery, Disconnected]


class NetClient:
    ''' Network client for the chat window and the console '''
    def __init__(self, config: ClientConfig,
                 on_message: Optional[Callable[[Event], None]] = None):
        self.config = config
        self.conn: Optional[Connection] = None
        self.session: Optional[ChatSession] = None
        self.recv_thread: Optional[threading.Thread] = None
        self.running = False
        # Backlog events until a front end attaches the handler; then flush
        self._on_message: Optional[Callable[[Event], None]] = None
        self._backlog: List[Event] = []
        self._lock = threading.Lock()              # guards _on_message and _backlog, never held in a callback
        self._deliver_lock = threading.RLock()     # keeps replayed and live events in arrival order
        if on_message:
            self.on_message = on_message

    @property
    def on_message(self) -> Optional[Callable[[Event], None]]:
        ''' The callback for inbound deliveries and the final Disconnected event '''
        return self._on_message

    @on_message.setter
    def on_message(self, cb: Optional[Callable[[Event], None]]):
        '''
        Set the callback. Events received before a callback was attached are
        replayed to it now, in arrival order.
        '''
        with self._deliver_lock:
            with self._lock:
                self._on_message = cb
                if not cb:
                    return
                pending, self._backlog = self._backlog, []
            for event in pending:
                self._call(cb, event)

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def encrypted(self) -> bool:
        return bool(self.session and self.session.encrypted)

    def connect(self):
        '''
        Connect, start listening and run the handshake.
        Raises InvalidKeySize / TransportDecodeError for a bad key (before any
        traffic), ConnectFailed if the server is unreachable, TransportError
        if the handshake cannot be sent.
        '''
        cfg = self.config
        codec = cfg.make_codec()
        self.conn = Connection.connect(cfg.server, cfg.port, timeout=cfg.connect_timeout)
        self.session = ChatSession(self.conn, codec, cfg.make_framing(),
                                   handshake_delay=cfg.handshake_delay)
        # Start listening BEFORE the handshake so nothing the server sends
        # in reply to it is missed
        self.running = True
        self.recv_thread = threading.Thread(target=self._recv_loop, name="chat-recv", daemon=True)
        self.recv_thread.start()
        try:
            self.session.start(cfg.name, skip_handshake=cfg.skip_handshake)
        except ChatError:
            self.close()
            raise

    def send(self, text: str):
        ''' Send one chat line; empty text is ignored '''
        self.session.send_chat(text)

    def close(self):
        self.running = False
        if self.session:
            self.session.close()

    def join(self, timeout: Optional[float] = None):
        if self.recv_thread:
            self.recv_thread.join(timeout)

    def _call(self, cb, event: Event):
        try:
            cb(event)
        except Exception:
            logger.exception("Message handler failed")

    def _dispatch(self, event: Event):
        with self._deliver_lock:
            with self._lock:
                cb = self._on_message
                if not cb:
                    self._backlog.append(event)
                    return
            self._call(cb, event)

    def _recv_loop(self):
        ''' Thread function to receive messages from the server '''
        reason = None
        try:
            for delivery in self.session.receive_loop():
                self._dispatch(delivery)
        except ChatError as exc:
            reason = exc
            logger.error("Receive loop ended: %s", exc)
        finally:
            self.running = False
            self._dispatch(Disconnected(reason))
