import tkinter as tk
from tkinter import ttk, messagebox
import datetime, queue
from typing import Optional

import emoji

from chatcommon.errors import ChatError, SessionStateError

from .net import Disconnected, Event, NetClient

POLL_MS = 100   # how often the Tk thread drains inbound events

EMOJI_CODES = [
    ":grinning:", ":smiley:", ":smile:", ":grin:", ":sweat_smile:", ":joy:", ":wink:",
    ":blush:", ":heart_eyes:", ":yum:", ":stuck_out_tongue:", ":sunglasses:", ":thinking:",
    ":neutral_face:", ":smirk:", ":unamused:", ":roll_eyes:", ":pensive:", ":sleepy:",
    ":cry:", ":sob:", ":scream:", ":angry:", ":rage:", ":clap:", ":wave:", ":thumbs_up:",
    ":thumbs_down:", ":ok_hand:", ":pray:", ":muscle:", ":heart:", ":sparkles:", ":fire:",
    ":star:", ":zap:", ":tada:", ":rocket:", ":lock:", ":key:",
]


def emoji_items():
    '''
    Return (symbol, code) pairs for the picker, e.g. ("😄", ":smile:").
    Codes the installed emoji package does not know are skipped.
    '''
    items = []
    for code in EMOJI_CODES:
        sym = emoji.emojize(code, language="alias")
        if sym != code:
            items.append((sym, code))
    return items


class ChatUI(tk.Tk):
    def __init__(self, net: NetClient):
        super().__init__()
        self.net = net
        self.title("Chat")
        self.geometry("640x480")
        self.events: "queue.Queue[Event]" = queue.Queue()
        self.closed = False

        self.columnconfigure(0, weight=1)
        self.rowconfigure(1, weight=1)

        mode = "encrypted" if net.encrypted else "plaintext"
        header = tk.Label(self, text=f"Welcome to the chat  |  {net.name}  |  {mode}",
                          bg="#a1ecf7", font=("Segoe UI", 13, "bold"))
        header.grid(row=0, column=0, sticky="ew", pady=(4, 6))

        # message area
        frame = ttk.Frame(self)
        frame.grid(row=1, column=0, sticky="nsew", padx=8)
        frame.rowconfigure(0, weight=1)
        frame.columnconfigure(0, weight=1)
        self.text = tk.Text(frame, state="disabled", wrap="word")
        self.text.grid(row=0, column=0, sticky="nsew")
        sb = ttk.Scrollbar(frame, orient="vertical", command=self.text.yview)
        sb.grid(row=0, column=1, sticky="ns")
        self.text.configure(yscrollcommand=sb.set)
        self.text.tag_config("system", foreground="gray")
        self.text.tag_config("warning", foreground="#c62828")
        self.text.tag_config("own", foreground="#2a64cb")

        # compose area
        compose = ttk.Frame(self)
        compose.grid(row=2, column=0, sticky="ew", padx=8, pady=8)
        compose.columnconfigure(0, weight=1)
        self.entry = ttk.Entry(compose)
        self.entry.grid(row=0, column=0, sticky="ew", ipady=6)
        self.entry.bind("<Return>", lambda e: self.send_text())
        self.entry.focus_set()
        ttk.Button(compose, text=emoji.emojize(":smile:", language="alias"), width=3,
                   command=self.open_emoji_picker).grid(row=0, column=1, padx=4)
        ttk.Button(compose, text="Send", command=self.send_text, width=10).grid(row=0, column=2, padx=4)

        self.protocol("WM_DELETE_WINDOW", self.on_close)

        # All widgets exist: attach the handler (flushes the backlog) and start polling
        self.net.on_message = self.events.put
        self.after(POLL_MS, self._poll)

    def ts(self):
        return datetime.datetime.now().strftime("%H:%M:%S")

    def append(self, text: str, tag: Optional[str] = None):
        self.text.configure(state="normal")
        line = text if text.endswith("\n") else text + "\n"
        self.text.insert("end", line, (tag,) if tag else ())
        self.text.configure(state="disabled")
        self.text.see("end")

    def send_text(self):
        raw = self.entry.get()
        if not raw:
            return
        self.entry.delete(0, "end")
        try:
            self.net.send(raw)
        except SessionStateError as exc:
            self.append(f"(System) {exc}", "warning")
            return
        except ChatError as exc:
            messagebox.showerror("Send failed", str(exc))
            return
        self.append(f"({self.ts()}) {self.net.name}: {raw}", "own")

    def _poll(self):
        ''' Drain events queued by the network thread; runs on the Tk thread '''
        while True:
            try:
                event = self.events.get_nowait()
            except queue.Empty:
                break
            self._show(event)
        if not self.closed:
            self.after(POLL_MS, self._poll)

    def _show(self, event: Event):
        if isinstance(event, Disconnected):
            self.append(f"(System) ({self.ts()}) {event.text}", "system")
            self.entry.configure(state="disabled")
        elif event.ok:
            self.append(event.text)
        else:
            self.append(f"(Warning) ({self.ts()}) discarded a message: {event.error}", "warning")

    def on_close(self):
        self.closed = True
        self.net.close()
        self.destroy()

    # ========== Emoji picker ==========
    def open_emoji_picker(self):
        ''' Small grid of emoji buttons; a click inserts the symbol into the entry '''
        if getattr(self, "_emoji_win", None) and self._emoji_win.winfo_exists():
            self._emoji_win.lift()
            return
        win = tk.Toplevel(self)
        self._emoji_win = win
        win.title("Pick an emoji")
        win.transient(self)
        win.resizable(False, False)
        win.bind("<Escape>", lambda e: win.destroy())
        self._emoji_insert_pos = self.entry.index("insert")

        style = ttk.Style(win)
        style.configure("Emoji.TButton", font=("Segoe UI Emoji", 16), padding=(4, 2))
        cols = 8
        for i, (sym, code) in enumerate(emoji_items()):
            btn = ttk.Button(win, text=sym, width=3, style="Emoji.TButton",
                             command=lambda s=sym: self._insert_symbol(s))
            btn.grid(row=i // cols, column=i % cols, padx=2, pady=2)

    def _insert_symbol(self, symbol: str):
        self.entry.icursor(self._emoji_insert_pos)
        self.entry.insert("insert", symbol)
        self._emoji_insert_pos = self.entry.index("insert")
        self.entry.focus_set()
