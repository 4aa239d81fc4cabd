import socket
import unittest
from unittest import mock

from chatcommon.connection import Connection
from chatcommon.crypto import AeadCodec, SymmetricKey, encode_transport
from chatcommon.errors import (AuthenticationFailed, MalformedEnvelope, SessionStateError,
                               TransportDecodeError, TransportError)
from chatcommon.framing import LengthPrefixedFraming
from chatcommon.protocol import ChatSession, HandshakeState


class FakeConnection:
    ''' Stand-in for Connection: records writes, replays scripted reads '''
    def __init__(self, inbound=()):
        self.sent = []
        self.inbound = list(inbound)
        self.closed = False
        self.sender = self
        self.receiver = self

    def send(self, data):
        self.sent.append(data)

    def receive(self, size=4096):
        if not self.inbound:
            return b""
        item = self.inbound.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self):
        self.closed = True


class HandshakeTests(unittest.TestCase):
    def setUp(self):
        self.sleeps = []
        self.conn = FakeConnection()

    def session(self, codec=None, **kw):
        return ChatSession(self.conn, codec, sleep=self.sleeps.append, **kw)

    def test_plaintext_handshake(self):
        s = self.session()
        self.assertIs(s.state, HandshakeState.NOT_STARTED)
        s.start("alice")
        self.assertEqual(self.conn.sent, [b"handshake", b"name alice"])
        self.assertEqual(self.sleeps, [1.0])
        self.assertIs(s.state, HandshakeState.READY)

    def test_encrypted_handshake(self):
        codec = AeadCodec(SymmetricKey.generate())
        s = self.session(codec, handshake_delay=0.25)
        s.start("bob")
        self.assertEqual([codec.open(m) for m in self.conn.sent], ["handshake", "name bob"])
        self.assertNotIn(b"handshake", b"".join(self.conn.sent))
        self.assertEqual(self.sleeps, [0.25])

    def test_state_walk(self):
        s = self.session()
        seen = []
        real_send = self.conn.send
        def send(data):
            seen.append(s.state)
            real_send(data)
        self.conn.send = send
        s.start("carol")
        self.assertEqual(seen, [HandshakeState.NOT_STARTED, HandshakeState.KEY_SENT])

    def test_skip_handshake(self):
        s = self.session()
        s.start("ignored", skip_handshake=True)
        self.assertEqual(self.conn.sent, [])
        self.assertEqual(self.sleeps, [])
        self.assertIs(s.state, HandshakeState.READY)

    def test_start_twice(self):
        s = self.session()
        s.start("alice", skip_handshake=True)
        with self.assertRaises(SessionStateError):
            s.start("alice")

    def test_empty_name(self):
        with self.assertRaises(ValueError):
            self.session().start("")
        self.assertEqual(self.conn.sent, [])

    def test_zero_delay_does_not_sleep(self):
        self.session(handshake_delay=0).start("dave")
        self.assertEqual(self.sleeps, [])


class SendChatTests(unittest.TestCase):
    def setUp(self):
        self.conn = FakeConnection()

    def test_plaintext(self):
        s = ChatSession(self.conn)
        s.start("x", skip_handshake=True)
        s.send_chat("héllo")
        self.assertEqual(self.conn.sent, ["héllo".encode("utf-8")])

    def test_encrypted(self):
        codec = AeadCodec(SymmetricKey.generate())
        s = ChatSession(self.conn, codec)
        s.start("x", skip_handshake=True)
        s.send_chat("secret")
        self.assertEqual(codec.open(self.conn.sent[0]), "secret")

    def test_empty_text_sends_nothing(self):
        codec = AeadCodec(SymmetricKey.generate())
        s = ChatSession(self.conn, codec)
        s.start("x", skip_handshake=True)
        with mock.patch.object(codec, "encrypt", wraps=codec.encrypt) as spy:
            s.send_chat("")
            spy.assert_not_called()
        self.assertEqual(self.conn.sent, [])

    def test_before_handshake(self):
        s = ChatSession(self.conn)
        with self.assertRaises(SessionStateError):
            s.send_chat("too early")
        self.assertEqual(self.conn.sent, [])

    def test_framed(self):
        s = ChatSession(self.conn, framing=LengthPrefixedFraming())
        s.start("x", skip_handshake=True)
        s.send_chat("abc")
        self.assertEqual(self.conn.sent, [b"\x00\x00\x00\x03abc"])

    def test_close(self):
        s = ChatSession(self.conn)
        s.close()
        self.assertTrue(self.conn.closed)


class ReceiveLoopTests(unittest.TestCase):
    def test_plaintext_chunks(self):
        s = ChatSession(FakeConnection([b"hello", "wörld".encode("utf-8"), b"\xffbad"]))
        texts = [d.text for d in s.receive_loop()]
        self.assertEqual(texts, ["hello", "wörld", "\ufffdbad"])

    def test_bad_messages_do_not_end_loop(self):
        codec = AeadCodec(SymmetricKey.generate())
        good = codec.seal("first").encode()
        env = bytearray(codec.encrypt(b"tampered"))
        env[-1] ^= 0x01
        inbound = [
            good,
            b"not base64 !!",
            encode_transport(bytes(env)).encode(),
            encode_transport(b"\x00" * 8).encode(),
            codec.seal("last").encode(),
        ]
        s = ChatSession(FakeConnection(inbound), codec)
        with self.assertLogs("chatcommon.protocol", level="WARNING"):
            out = list(s.receive_loop())
        self.assertEqual([d.text for d in out], ["first", None, None, None, "last"])
        self.assertEqual([type(d.error) for d in out],
                         [type(None), TransportDecodeError, AuthenticationFailed,
                          MalformedEnvelope, type(None)])
        self.assertTrue(out[0].ok)
        self.assertFalse(out[2].ok)
        self.assertEqual(out[1].raw, b"not base64 !!")

    def test_io_error_propagates(self):
        s = ChatSession(FakeConnection([b"one", TransportError("reset")]))
        loop = s.receive_loop()
        self.assertEqual(next(loop).text, "one")
        with self.assertRaises(TransportError):
            next(loop)

    def test_framed_reassembly(self):
        framing = LengthPrefixedFraming()
        wire = framing.encode(b"hello") + framing.encode(b"world")
        chunks = [wire[:3], wire[3:12], wire[12:]]
        s = ChatSession(FakeConnection(chunks), framing=framing)
        self.assertEqual([d.text for d in s.receive_loop()], ["hello", "world"])

    def test_truncated_frame_at_end(self):
        framing = LengthPrefixedFraming()
        s = ChatSession(FakeConnection([framing.encode(b"hello")[:6]]), framing=framing)
        with self.assertLogs("chatcommon.protocol", level="WARNING"):
            self.assertEqual(list(s.receive_loop()), [])


class EndToEndTests(unittest.TestCase):
    ''' Two real sockets: A connects, B is the accepted end '''
    def setUp(self):
        self.server = socket.create_server(("127.0.0.1", 0))
        port = self.server.getsockname()[1]
        self.a = Connection.connect("127.0.0.1", port, timeout=5)
        peer, _ = self.server.accept()
        peer.settimeout(5)
        self.b = Connection.from_socket(peer)

    def tearDown(self):
        self.a.close()
        self.b.close()
        self.server.close()

    def test_plaintext_hello(self):
        alice = ChatSession(self.a)
        bob = ChatSession(self.b)
        alice.start("alice", skip_handshake=True)
        alice.send_chat("hello")
        alice.close()
        self.assertEqual([d.text for d in bob.receive_loop()], ["hello"])

    def test_encrypted_secret(self):
        key = SymmetricKey.generate()
        alice = ChatSession(self.a, AeadCodec(key))
        bob = ChatSession(self.b, AeadCodec(SymmetricKey(key.material)))
        alice.start("alice", skip_handshake=True)
        alice.send_chat("secret")
        alice.close()
        out = list(bob.receive_loop())
        self.assertEqual([d.text for d in out], ["secret"])

        eve = AeadCodec(SymmetricKey.generate())
        with self.assertRaises(AuthenticationFailed):
            eve.open(out[0].raw)

    def test_handshake_on_the_wire(self):
        alice = ChatSession(self.a, handshake_delay=0, framing=LengthPrefixedFraming())
        bob = ChatSession(self.b, framing=LengthPrefixedFraming())
        alice.start("alice")
        alice.send_chat("hi")
        alice.close()
        self.assertEqual([d.text for d in bob.receive_loop()], ["handshake", "name alice", "hi"])


if __name__ == "__main__":
    unittest.main()
