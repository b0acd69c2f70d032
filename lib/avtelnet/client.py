"""Resilient line-oriented TCP client with heartbeat reconnection."""

import asyncio
import functools
import inspect
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from lib.avtelnet.exceptions import (
    ClientDisposedError,
    HandshakeError,
    NotConnectedError,
    StreamError,
)
from lib.avtelnet.heartbeat import HeartbeatMonitor
from lib.avtelnet.logging import ClientLogger, escape, get_logger
from lib.avtelnet.streams import Epoch, LineReader, LineWriter, ReadStatus

if TYPE_CHECKING:
    from lib.avtelnet.config import ClientOptions, DeviceConfig

MessageHandler = Callable[[str], Any]
ValidationCallback = Callable[["TelnetClient", LineReader, LineWriter], Awaitable[None]]
ConnectionFactory = Callable[
    [str, int],
    Awaitable[tuple[asyncio.StreamReader, asyncio.StreamWriter]],
]

# asyncio.StreamReader default buffer limit
DEFAULT_LINE_LIMIT = 2**16

# Upper bound for waiting on a closing socket or a finishing reader task
_RELEASE_TIMEOUT = 2.0


def _consume_result(future: asyncio.Future) -> None:
    # the heartbeat may be cancelled while its reconnect attempt still runs
    if not future.cancelled():
        future.exception()


class TelnetClient:
    """Long-lived client for appliances speaking newline-delimited text.

    One connection at a time is current (an :class:`Epoch`). A background
    reader task dispatches received lines to the registered handlers, and a
    heartbeat probes the connection and reconnects when ``auto_reconnect``
    is set.
    """

    def __init__(
        self,
        host: str,
        port: int,
        *,
        auto_reconnect: bool = True,
        connect_timeout: float = 5.0,
        heartbeat_interval: float = 15.0,
        heartbeat_timeout: float = 3.0,
        reconnect_if_connected: bool = False,
        encoding: str = "utf-8",
        newline: str = "\n",
        line_limit: int = DEFAULT_LINE_LIMIT,
        logger: logging.Logger | None = None,
        connection_factory: ConnectionFactory | None = None,
    ) -> None:
        """Initialize telnet client.

        Parameters
        ----------
        host : str
            Target host name or IP address
        port : int
            Target TCP port
        auto_reconnect : bool, optional
            Run the heartbeat and reconnect on failure, by default True
        connect_timeout : float, optional
            Connection attempt timeout in seconds, by default 5.0
        heartbeat_interval : float, optional
            Seconds between liveness probes, by default 15.0
        heartbeat_timeout : float, optional
            Liveness probe timeout in seconds, by default 3.0
        reconnect_if_connected : bool, optional
            Make :meth:`connect` replace a live connection instead of
            keeping it, by default False
        encoding : str, optional
            Text encoding on the wire, by default "utf-8"
        newline : str, optional
            Terminator appended to sent lines, by default "\\n"
        line_limit : int, optional
            Longest accepted received line in bytes, by default 64 KiB. A
            longer line is a read error and ends the connection
        logger : logging.Logger | None, optional
            Logger to use, by default the framework logger
        connection_factory : ConnectionFactory | None, optional
            Coroutine function opening a stream pair, by default
            :func:`asyncio.open_connection` with ``line_limit``; a custom
            factory sets its own stream limit
        """
        if not host:
            raise ValueError("host must not be empty")

        self._host = host
        self._port = port
        self._auto_reconnect = auto_reconnect
        self.connect_timeout = connect_timeout
        self.heartbeat_timeout = heartbeat_timeout
        self.reconnect_if_connected = reconnect_if_connected
        self.encoding = encoding
        self.newline = newline
        self.line_limit = line_limit
        self.validate_connection: ValidationCallback | None = None

        self.logger = ClientLogger(logger or get_logger(), self.address)
        self._connection_factory = connection_factory or functools.partial(
            asyncio.open_connection, limit=line_limit
        )
        self._handlers: list[MessageHandler] = []

        self._epoch: Epoch | None = None
        self._epoch_count = 0
        self._epoch_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()
        self._reconnecting: asyncio.Future | None = None
        self._reader_tasks: set[asyncio.Task] = set()
        self._heartbeat = HeartbeatMonitor(heartbeat_interval, self._check_connection, self.logger)
        self._disposed = False

    @classmethod
    def from_config(
        cls,
        device: "DeviceConfig",
        options: "ClientOptions | None" = None,
        logger: logging.Logger | None = None,
    ) -> "TelnetClient":
        """Create a client from configuration models.

        Parameters
        ----------
        device : DeviceConfig
            Target device; its profile, if any, becomes the validation hook
        options : ClientOptions | None, optional
            Client behaviour settings, by default the model defaults
        logger : logging.Logger | None, optional
            Logger to use, by default the framework logger

        Returns
        -------
        TelnetClient
            Configured, unconnected client
        """
        from lib.avtelnet.config import ClientOptions
        from lib.avtelnet.profiles.registry import ProfileRegistry

        options = options or ClientOptions()
        client = cls(device.host, device.port, logger=logger, **options.model_dump())
        if device.profile:
            client.validate_connection = ProfileRegistry.get(device.profile, **device.profile_options)
        return client

    @property
    def host(self) -> str:
        return self._host

    @property
    def port(self) -> int:
        return self._port

    @property
    def address(self) -> str:
        return f"{self._host}:{self._port}"

    @property
    def connected(self) -> bool:
        """Whether a current connection exists and its transport is open."""
        epoch = self._epoch
        return epoch is not None and not epoch.writer.is_closing()

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def auto_reconnect(self) -> bool:
        return self._auto_reconnect

    @auto_reconnect.setter
    def auto_reconnect(self, value: bool) -> None:
        self._auto_reconnect = value
        if not value:
            self._heartbeat.disable()
        elif self._epoch is not None and not self._disposed:
            self._heartbeat.enable()

    @property
    def heartbeat_interval(self) -> float:
        return self._heartbeat.interval

    def on_message(self, handler: MessageHandler) -> MessageHandler:
        """Register a handler for received lines.

        Handlers run in registration order, once per non-blank line. Coroutine
        functions are awaited. Usable as a decorator.

        Parameters
        ----------
        handler : MessageHandler
            Callable taking the received line

        Returns
        -------
        MessageHandler
            The handler, unchanged
        """
        self._handlers.append(handler)
        return handler

    def remove_message_handler(self, handler: MessageHandler) -> None:
        self._handlers.remove(handler)

    async def connect(self) -> None:
        """Connect to the device.

        Connection failures are logged and absorbed; check :attr:`connected`.
        With ``auto_reconnect`` the heartbeat keeps retrying afterwards.

        Raises
        ------
        ClientDisposedError
            If the client has been disposed
        HandshakeError
            If the validation callback fails
        """
        self._check_disposed()

        self.logger.info("Connecting to telnet socket")
        await self._reconnect(force=self.reconnect_if_connected)

        if self._auto_reconnect and not self._disposed:
            self._heartbeat.enable()

    async def send(self, message: str) -> None:
        """Send one line to the device.

        Parameters
        ----------
        message : str
            Line text, sent unaltered with the configured terminator

        Raises
        ------
        ClientDisposedError
            If the client has been disposed
        NotConnectedError
            If there is no live connection, or the connection was replaced
            while waiting for an earlier write
        StreamError
            If the write fails
        """
        self._check_disposed()

        epoch = self._epoch
        if epoch is None or epoch.writer.is_closing():
            raise NotConnectedError("Client is not connected", address=self.address)

        self.logger.trace("Sending: '%s'", escape(message))
        async with self._write_lock:
            if epoch is not self._epoch or epoch.writer.is_closing():
                raise NotConnectedError("Connection lost before sending", address=self.address)
            try:
                await epoch.writer.write_line(message)
            except StreamError as e:
                e.address = self.address
                raise

    async def disconnect(self) -> None:
        """Close the current connection and stop the heartbeat.

        Raises
        ------
        ClientDisposedError
            If the client has been disposed
        """
        self._check_disposed()

        self.logger.info("Disconnecting telnet socket")
        self._heartbeat.disable()
        async with self._epoch_lock:
            # a reconnect that held the lock may have re-enabled it
            self._heartbeat.disable()
            await self._reset_epoch()

    async def dispose(self) -> None:
        """Release the heartbeat and the current connection. Idempotent."""
        if self._disposed:
            return
        self._disposed = True

        await self._heartbeat.stop()
        async with self._epoch_lock:
            await self._reset_epoch()

        pending = [task for task in self._reader_tasks if task is not asyncio.current_task()]
        if pending:
            await asyncio.wait(pending, timeout=_RELEASE_TIMEOUT)

    async def _reconnect(self, force: bool = True, background: bool = False) -> None:
        # Concurrent triggers join the attempt already in flight
        attempt = self._reconnecting
        if attempt is None or attempt.done():
            attempt = asyncio.ensure_future(self._reconnect_sequence(force, background))
            attempt.add_done_callback(_consume_result)
            self._reconnecting = attempt
        await asyncio.shield(attempt)

    async def _reconnect_sequence(self, force: bool, background: bool) -> None:
        async with self._epoch_lock:
            if self._disposed:
                return
            if background and not self._heartbeat.enabled:
                self.logger.debug("Heartbeat disabled; skipping reconnect")
                return
            if not force and self.connected:
                self.logger.debug("Already connected")
                return

            await self._reset_epoch()

            try:
                raw_reader, raw_writer = await asyncio.wait_for(
                    self._connection_factory(self._host, self._port),
                    timeout=self.connect_timeout,
                )
            except asyncio.TimeoutError:
                self.logger.info("Connection attempt timed out after %ss", self.connect_timeout)
                return
            except OSError as e:
                self.logger.info("Unable to connect: %s", e)
                return
            except Exception:
                self.logger.exception("Unable to connect")
                return

            reader = LineReader(raw_reader, self.encoding)
            writer = LineWriter(raw_writer, self.encoding, self.newline)

            if self.validate_connection is not None:
                try:
                    await self.validate_connection(self, reader, writer)
                except Exception as e:
                    self.logger.error("Unable to validate connection: %s", e)
                    await self._release(reader, writer)
                    raise HandshakeError(
                        f"Connection validation failed: {e}",
                        address=self.address,
                    ) from e

            self._epoch_count += 1
            epoch = Epoch(self._epoch_count, reader, writer)
            self._epoch = epoch
            self.logger.info("Connected (epoch %d)", epoch.number, extra={"epoch": epoch.number})

            task = asyncio.create_task(
                self._read_messages(epoch),
                name=f"avtelnet-reader-{epoch.number}",
            )
            self._reader_tasks.add(task)
            task.add_done_callback(self._reader_tasks.discard)

            if self._auto_reconnect:
                self._heartbeat.enable()

    async def _reset_epoch(self) -> None:
        epoch, self._epoch = self._epoch, None
        if epoch is None:
            return

        try:
            epoch.cancel()
        except Exception:
            self.logger.warning("Error while cancelling read loop", exc_info=True)

        await self._release(epoch.reader, epoch.writer)

    async def _release(self, reader: LineReader, writer: LineWriter) -> None:
        try:
            reader.close()
        except Exception:
            self.logger.warning("Error while closing read stream", exc_info=True)

        try:
            writer.close()
        except Exception:
            self.logger.warning("Error while closing write stream", exc_info=True)

        try:
            await asyncio.wait_for(writer.wait_closed(), timeout=_RELEASE_TIMEOUT)
        except Exception:
            self.logger.warning("Error while releasing socket", exc_info=True)

    async def _read_messages(self, epoch: Epoch) -> None:
        try:
            while not epoch.is_cancelled:
                if epoch.writer.is_closing():
                    self.logger.debug("Socket closed; stopping read loop")
                    break

                result = await epoch.reader.read_line()
                if result.status is ReadStatus.END_OF_STREAM:
                    self.logger.debug("End of stream")
                    break
                if result.status is ReadStatus.ERROR:
                    self.logger.debug("Read failed: %s", result.error)
                    break

                if not result.line.strip():
                    continue

                self.logger.trace("Received: '%s'", escape(result.line))
                await self._dispatch(result.line)
        finally:
            epoch.reader.close()
            try:
                epoch.writer.close()
            except Exception:
                self.logger.warning("Error while closing socket after read loop", exc_info=True)

    async def _dispatch(self, message: str) -> None:
        for handler in list(self._handlers):
            try:
                result = handler(message)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                self.logger.exception("Message handler %r failed", handler)

    async def _check_connection(self) -> None:
        epoch = self._epoch
        if epoch is None or epoch.writer.is_closing():
            self.logger.info("Connection lost; reconnecting")
        else:
            try:
                await asyncio.wait_for(self._probe(epoch), timeout=self.heartbeat_timeout)
                return
            except asyncio.TimeoutError:
                self.logger.warning("Heartbeat timed out after %ss; reconnecting", self.heartbeat_timeout)
            except StreamError as e:
                self.logger.warning("Heartbeat failed: %s; reconnecting", e)

        try:
            await self._reconnect(force=True, background=True)
        except Exception:
            self.logger.warning("Reconnect attempt failed", exc_info=True)

    async def _probe(self, epoch: Epoch) -> None:
        async with self._write_lock:
            await epoch.writer.probe()

    def _check_disposed(self) -> None:
        if self._disposed:
            raise ClientDisposedError(address=self.address)

    async def __aenter__(self) -> "TelnetClient":
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.dispose()
