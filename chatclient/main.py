"""
Main entry point for the chat client.
Parse options, connect and run the handshake, then open the chat window
(or the console front end with --console).
"""
import logging, sys

from chatcommon.crypto import SymmetricKey
from chatcommon.errors import ChatError, ConnectFailed

from .config import build_parser, from_args
from .net import NetClient


def main(argv=None) -> int:
    """
    Start the chat client.

    Step 1: Parse options (or print a fresh key with --generate-key)
    Step 2: Connect to the server and run the handshake
    Step 3: Hand the connected client to the window or the console
    """
    args = build_parser().parse_args(argv)
    if args.generate_key:
        print(SymmetricKey.generate().to_text())
        return 0

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = from_args(args)

    # Don't attach a handler yet - events backlog until the front end exists
    net = NetClient(config)
    try:
        net.connect()
    except ConnectFailed as exc:
        print(f"Error connecting to server: {exc}", file=sys.stderr)
        return 1
    except ChatError as exc:   # bad key, or the handshake could not be sent
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Connected to {config.server}:{config.port} as {config.name}"
          f" ({'encrypted' if net.encrypted else 'plaintext'})")

    if config.console:
        from .console import run
        return run(net)

    from .ui import ChatUI
    ui = ChatUI(net)
    ui.mainloop()
    net.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
