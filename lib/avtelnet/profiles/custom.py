"""Custom device profile built from a greeting prefix and an announce line."""

from typing import TYPE_CHECKING

from lib.avtelnet.exceptions import UnrecognizedDeviceError
from lib.avtelnet.logging import escape
from lib.avtelnet.profiles.base import DeviceProfile

if TYPE_CHECKING:
    from lib.avtelnet.client import TelnetClient
    from lib.avtelnet.streams import LineReader, LineWriter


class CustomProfile(DeviceProfile):
    """Profile for devices described only by configuration."""

    name = "custom"
    description = "Custom device: optional greeting check and announce line"

    def __init__(
        self,
        greeting_prefix: str | None = None,
        announce: str | None = None,
    ) -> None:
        """Initialize custom profile.

        Parameters
        ----------
        greeting_prefix : str | None, optional
            Required start of the first line sent by the device, by default
            None (no greeting is read)
        announce : str | None, optional
            Line written once the greeting checks out, by default None
        """
        super().__init__()
        self.greeting_prefix = greeting_prefix
        self.announce = announce

    async def validate(
        self,
        client: "TelnetClient",
        reader: "LineReader",
        writer: "LineWriter",
    ) -> None:
        """Read and check the greeting, then write the announce line.

        Parameters
        ----------
        client : TelnetClient
            Client owning the new connection
        reader : LineReader
            Handshake reader for the new connection
        writer : LineWriter
            Writer for the new connection

        Raises
        ------
        UnrecognizedDeviceError
            If the greeting is missing or does not start with the prefix
        """
        if self.greeting_prefix is not None:
            greeting = await reader.readline()
            if greeting is None or not greeting.startswith(self.greeting_prefix):
                shown = escape(greeting) if greeting is not None else "<end of stream>"
                raise UnrecognizedDeviceError(
                    f"Unrecognized device greeting: '{shown}'",
                    address=client.address,
                    greeting=greeting,
                )
            client.logger.debug("Device greeting: '%s'", escape(greeting))

        if self.announce is not None:
            await writer.write_line(self.announce)
