"""In-memory stream pairs for timing-sensitive client tests."""

import asyncio


class FakeWriter:
    """Stand-in for :class:`asyncio.StreamWriter` recording written bytes."""

    def __init__(self, reader: asyncio.StreamReader, hang_drain: bool = False) -> None:
        self.reader = reader
        self.hang_drain = hang_drain
        self.chunks: list[bytes] = []
        self.closed = False
        self.overlaps = 0
        self._busy = False

    def write(self, data: bytes) -> None:
        # a write landing before the previous drain finished
        if self._busy:
            self.overlaps += 1
        self._busy = True
        self.chunks.append(data)

    async def drain(self) -> None:
        if self.hang_drain:
            await asyncio.Event().wait()
        # give concurrent writers a chance to run
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        self._busy = False

    def is_closing(self) -> bool:
        return self.closed

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.reader.feed_eof()

    async def wait_closed(self) -> None:
        pass


class FakeConnector:
    """Connection factory producing fake stream pairs and tracking overlap."""

    def __init__(self, hang_drain: bool = False) -> None:
        self.hang_drain = hang_drain
        self.writers: list[FakeWriter] = []
        self.readers: list[asyncio.StreamReader] = []
        self.active = 0
        self.max_active = 0

    @property
    def calls(self) -> int:
        return len(self.writers)

    async def __call__(self, host: str, port: int) -> tuple[asyncio.StreamReader, FakeWriter]:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(0.005)
            reader = asyncio.StreamReader()
            writer = FakeWriter(reader, hang_drain=self.hang_drain)
            self.readers.append(reader)
            self.writers.append(writer)
            return reader, writer
        finally:
            self.active -= 1
