"""Line adapters over asyncio streams and the per-connection epoch."""

import asyncio
import enum
from dataclasses import dataclass, field

from lib.avtelnet.exceptions import StreamError


class ReadStatus(enum.Enum):
    """Outcome of a single line read."""

    LINE = "line"
    END_OF_STREAM = "end_of_stream"
    ERROR = "error"


@dataclass(frozen=True)
class ReadResult:
    """Result of :meth:`LineReader.read_line`."""

    status: ReadStatus
    line: str | None = None
    error: BaseException | None = None

    @classmethod
    def ok(cls, line: str) -> "ReadResult":
        return cls(ReadStatus.LINE, line=line)

    @classmethod
    def end_of_stream(cls) -> "ReadResult":
        return cls(ReadStatus.END_OF_STREAM)

    @classmethod
    def failed(cls, error: BaseException) -> "ReadResult":
        return cls(ReadStatus.ERROR, error=error)


def _strip_line_ending(text: str) -> str:
    if text.endswith("\n"):
        text = text[:-1]
        if text.endswith("\r"):
            text = text[:-1]
    return text


class LineReader:
    """Newline-delimited text reader over an :class:`asyncio.StreamReader`."""

    def __init__(self, reader: asyncio.StreamReader, encoding: str = "utf-8") -> None:
        """Initialize line reader.

        Parameters
        ----------
        reader : asyncio.StreamReader
            Underlying byte stream
        encoding : str, optional
            Text encoding, by default "utf-8"
        """
        self._reader = reader
        self.encoding = encoding
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def read_line(self) -> ReadResult:
        """Read one line.

        I/O problems are reported through the result status, never raised.

        Returns
        -------
        ReadResult
            ``LINE`` with the text minus its line ending, ``END_OF_STREAM``
            once the peer closed the connection, or ``ERROR``
        """
        if self._closed:
            return ReadResult.end_of_stream()

        try:
            data = await self._reader.readline()
        except Exception as e:
            return ReadResult.failed(e)

        if not data:
            return ReadResult.end_of_stream()

        return ReadResult.ok(_strip_line_ending(data.decode(self.encoding, errors="replace")))

    async def readline(self) -> str | None:
        """Read one line for handshake code.

        Returns
        -------
        str | None
            Line text, or None at end of stream

        Raises
        ------
        StreamError
            If the read fails
        """
        result = await self.read_line()
        if result.status is ReadStatus.ERROR:
            raise StreamError(f"Read failed: {result.error}") from result.error
        return result.line

    def close(self) -> None:
        self._closed = True


class LineWriter:
    """Newline-terminated text writer over an :class:`asyncio.StreamWriter`."""

    def __init__(
        self,
        writer: asyncio.StreamWriter,
        encoding: str = "utf-8",
        newline: str = "\n",
    ) -> None:
        """Initialize line writer.

        Parameters
        ----------
        writer : asyncio.StreamWriter
            Underlying byte stream
        encoding : str, optional
            Text encoding, by default "utf-8"
        newline : str, optional
            Line terminator appended to every line, by default "\\n"
        """
        self._writer = writer
        self.encoding = encoding
        self.newline = newline

    async def write_line(self, text: str) -> None:
        """Write one line and flush it.

        Parameters
        ----------
        text : str
            Line text, sent unaltered apart from the terminator

        Raises
        ------
        StreamError
            If the stream is closed or the write fails
        """
        await self._write((text + self.newline).encode(self.encoding))

    async def probe(self) -> None:
        """Write zero bytes and flush to check the stream is still usable.

        Raises
        ------
        StreamError
            If the stream is closed or the transport has been lost
        """
        await self._write(b"")

    async def _write(self, data: bytes) -> None:
        if self._writer.is_closing():
            raise StreamError("Write stream is closed")
        try:
            self._writer.write(data)
            await self._writer.drain()
        except (OSError, RuntimeError) as e:
            raise StreamError(f"Write failed: {e}") from e

    def is_closing(self) -> bool:
        return self._writer.is_closing()

    def close(self) -> None:
        """Close the write stream and its transport."""
        self._writer.close()

    async def wait_closed(self) -> None:
        await self._writer.wait_closed()


@dataclass(frozen=True)
class Epoch:
    """Resources of one socket connection, replaced as a unit on reconnect.

    The reader loop receives its epoch at spawn time and never looks at the
    client's current epoch again.
    """

    number: int
    reader: LineReader
    writer: LineWriter
    cancelled: asyncio.Event = field(default_factory=asyncio.Event)

    @property
    def is_cancelled(self) -> bool:
        return self.cancelled.is_set()

    def cancel(self) -> None:
        self.cancelled.set()
