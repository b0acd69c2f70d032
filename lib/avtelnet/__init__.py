"""Resilient line-oriented TCP client for home-theater appliances.

This package keeps a long-lived connection to devices that speak plain
newline-delimited text over a raw socket, reconnects after transient loss,
and delivers each received line to caller-supplied handlers.
"""

__version__ = "0.1.0"

from lib.avtelnet.client import TelnetClient
from lib.avtelnet.exceptions import (
    ClientDisposedError,
    HandshakeError,
    NotConnectedError,
    StreamError,
    TelnetError,
    UnrecognizedDeviceError,
)
from lib.avtelnet.streams import LineReader, LineWriter

__all__ = [
    "TelnetClient",
    "LineReader",
    "LineWriter",
    "TelnetError",
    "ClientDisposedError",
    "NotConnectedError",
    "HandshakeError",
    "StreamError",
    "UnrecognizedDeviceError",
]
