"""
Headless front end: lines typed on stdin are sent, inbound messages are
printed as they arrive. Ends on EOF (Ctrl-D) or when the server disconnects.
"""
import sys
from typing import TextIO

from chatcommon.errors import ChatError

from .net import Disconnected, Event, NetClient


def print_event(event: Event, out: TextIO = sys.stdout):
    if isinstance(event, Disconnected):
        print(f"(System) {event.text}", file=out, flush=True)
    elif event.ok:
        print(event.text.rstrip("\r\n"), file=out, flush=True)
    else:
        print(f"(Warning) discarded a message: {event.error}", file=out, flush=True)


def run(net: NetClient, stdin: TextIO = sys.stdin, out: TextIO = sys.stdout) -> int:
    net.on_message = lambda event: print_event(event, out)
    try:
        for line in stdin:
            if not net.running:
                break
            try:
                net.send(line.rstrip("\r\n"))
            except ChatError as exc:
                print(f"(Error) {exc}", file=out, flush=True)
                return 1
    except KeyboardInterrupt:
        pass
    finally:
        net.close()
        net.join(timeout=2)
    return 0
