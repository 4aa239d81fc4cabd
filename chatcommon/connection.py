import enum, logging, socket, threading
from typing import Optional

from chatcommon.errors import ConnectFailed, TransportError

logger = logging.getLogger(__name__)

RECV_SIZE = 4096   # bytes per receive() call


class ConnectionState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    CLOSED = "closed"   # terminal


class Connection:
    '''
    One TCP stream to the chat server.

    send() and receive() may be called from different threads: they use
    independent system calls on the same descriptor. close() may be called
    from either side and wakes a receive() blocked in the other thread.
    '''
    def __init__(self):
        self.sock: Optional[socket.socket] = None
        self.peer = "?"
        self.state = ConnectionState.DISCONNECTED
        self._close_lock = threading.Lock()

    @classmethod
    def connect(cls, host: str, port: int, timeout: Optional[float] = None) -> "Connection":
        '''
        Open a TCP connection to host:port.
        Input:
            - host: server host name or address
            - port: server port (1-65535)
            - timeout: seconds to wait for the connection, None waits forever
        Output: a connected Connection
        Raises ConnectFailed on refusal, timeout or name resolution failure. No retry.
        '''
        conn = cls()
        conn.open(host, port, timeout)
        return conn

    @classmethod
    def from_socket(cls, sock: socket.socket) -> "Connection":
        ''' Wrap an already connected socket (e.g. one returned by accept()) '''
        conn = cls()
        conn._attach(sock)
        return conn

    def open(self, host: str, port: int, timeout: Optional[float] = None):
        if self.state is not ConnectionState.DISCONNECTED:
            raise TransportError(f"connection is {self.state.value}")
        if not isinstance(port, int) or not 0 < port <= 65535:
            raise ConnectFailed(f"invalid port: {port!r}")
        try:
            sock = socket.create_connection((host, port), timeout=timeout)
        except OSError as exc:  # refused, timed out, gaierror
            raise ConnectFailed(f"cannot connect to {host}:{port}: {exc}") from exc
        sock.settimeout(None)  # the timeout only bounds connect()
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)  # send chat lines immediately
        self._attach(sock)

    def _attach(self, sock: socket.socket):
        self.sock = sock
        try:
            host, port = sock.getpeername()[:2]
            self.peer = f"{host}:{port}"
        except OSError:
            pass
        self.state = ConnectionState.CONNECTED
        logger.info("Connected to %s", self.peer)

    @property
    def connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    def send(self, data: bytes) -> None:
        ''' Write the whole buffer; sendall() loops over partial writes '''
        if self.state is not ConnectionState.CONNECTED:
            raise TransportError(f"cannot send, connection is {self.state.value}")
        try:
            self.sock.sendall(data)
        except OSError as exc:
            raise TransportError(f"send to {self.peer} failed: {exc}") from exc
        logger.debug("Sent %d bytes to %s", len(data), self.peer)

    def receive(self, size: int = RECV_SIZE) -> bytes:
        '''
        Block until some bytes arrive and return them. A chunk is not
        necessarily a whole message.
        Output: the bytes read, or b"" at end of stream (peer closed, or this
        connection was closed while waiting)
        '''
        if self.state is ConnectionState.CLOSED:
            return b""
        if self.state is ConnectionState.DISCONNECTED:
            raise TransportError("cannot receive, connection is disconnected")
        try:
            chunk = self.sock.recv(size)
        except OSError as exc:
            if self.state is ConnectionState.CLOSED:
                return b""
            raise TransportError(f"receive from {self.peer} failed: {exc}") from exc
        if not chunk:
            logger.info("%s closed the connection", self.peer)
        return chunk

    def close(self) -> None:
        with self._close_lock:
            if self.state is ConnectionState.CLOSED:
                return
            self.state = ConnectionState.CLOSED
            sock = self.sock
        if sock is None:
            return
        try:
            sock.shutdown(socket.SHUT_RDWR)  # wakes a recv() blocked in another thread
        except OSError:
            pass  # peer already gone
        sock.close()
        logger.info("Connection to %s closed", self.peer)

    @property
    def sender(self) -> "SendChannel":
        return SendChannel(self)

    @property
    def receiver(self) -> "ReceiveChannel":
        return ReceiveChannel(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class SendChannel:
    ''' Send-only view of a Connection, handed to the input side '''
    __slots__ = ("_conn",)

    def __init__(self, conn: Connection):
        self._conn = conn

    def send(self, data: bytes) -> None:
        self._conn.send(data)


class ReceiveChannel:
    ''' Receive-only view of a Connection, handed to the receive loop '''
    __slots__ = ("_conn",)

    def __init__(self, conn: Connection):
        self._conn = conn

    def receive(self, size: int = RECV_SIZE) -> bytes:
        return self._conn.receive(size)
