import argparse, os
from dataclasses import dataclass
from typing import Optional, Sequence

from chatcommon.crypto import AeadCodec, SymmetricKey
from chatcommon.framing import LengthPrefixedFraming, RawFraming
from chatcommon.protocol import DEFAULT_HANDSHAKE_DELAY

from .names import generate_name

DEFAULT_SERVER = "localhost"
DEFAULT_PORT = 12345
KEY_ENV = "LINKCHAT_KEY"


@dataclass
class ClientConfig:
    server: str = DEFAULT_SERVER
    port: int = DEFAULT_PORT
    name: Optional[str] = None          # None -> generated on first use
    skip_handshake: bool = False
    key: Optional[str] = None           # Base64url text of the 32-byte key
    framed: bool = False                # length-prefixed framing instead of raw reads
    handshake_delay: float = DEFAULT_HANDSHAKE_DELAY
    connect_timeout: Optional[float] = None
    console: bool = False
    verbose: bool = False

    def __post_init__(self):
        if not self.name:
            self.name = generate_name()

    def __repr__(self):
        key = "<hidden>" if self.key else None
        return (f"ClientConfig(server={self.server!r}, port={self.port}, name={self.name!r}, "
                f"skip_handshake={self.skip_handshake}, key={key}, framed={self.framed})")

    def make_codec(self) -> Optional[AeadCodec]:
        ''' AeadCodec for the configured key, or None in plaintext mode '''
        if not self.key:
            return None
        return AeadCodec(SymmetricKey.from_text(self.key))

    def make_framing(self):
        return LengthPrefixedFraming() if self.framed else RawFraming()


def _port(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port number: {text}")
    if not 0 < value <= 65535:
        raise argparse.ArgumentTypeError(f"port out of range: {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="linkchat", description="Line-oriented TCP chat client")
    ap.add_argument("-s", "--server", default=DEFAULT_SERVER, help="Server address (default: localhost)")
    ap.add_argument("-p", "--port", type=_port, default=DEFAULT_PORT, help="Server port (default: 12345)")
    ap.add_argument("-n", "--name", default=None, help="Your name (default: generated name)")
    ap.add_argument("--sh", "--skip-handshake", dest="skip_handshake", action="store_true",
                    help="Skip the handshake process")
    ap.add_argument("-k", "--key", default=os.environ.get(KEY_ENV),
                    help=f"Encryption key, Base64url of 32 bytes (default: ${KEY_ENV})")
    ap.add_argument("--framed", action="store_true",
                    help="Length-prefix every message (server must support it)")
    ap.add_argument("--handshake-delay", type=float, default=DEFAULT_HANDSHAKE_DELAY,
                    help="Seconds to wait between the two handshake messages")
    ap.add_argument("--connect-timeout", type=float, default=None, help="Seconds to wait for the server")
    ap.add_argument("--console", action="store_true", help="Use stdin/stdout instead of the window")
    ap.add_argument("--generate-key", action="store_true", help="Print a new random key and exit")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return ap


def from_args(args: argparse.Namespace) -> ClientConfig:
    return ClientConfig(
        server=args.server,
        port=args.port,
        name=args.name,
        skip_handshake=args.skip_handshake,
        key=args.key or None,
        framed=args.framed,
        handshake_delay=args.handshake_delay,
        connect_timeout=args.connect_timeout,
        console=args.console,
        verbose=args.verbose,
    )


def parse_config(argv: Optional[Sequence[str]] = None) -> ClientConfig:
    return from_args(build_parser().parse_args(argv))
