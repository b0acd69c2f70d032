"""Base device profile class."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lib.avtelnet.client import TelnetClient
    from lib.avtelnet.streams import LineReader, LineWriter


class DeviceProfile(ABC):
    """Base class for device profiles.

    A profile is the connection validation hook for one kind of appliance:
    it runs once per new connection, before received lines are dispatched.
    Instances are callable, so a profile can be assigned directly to
    ``TelnetClient.validate_connection``.
    """

    name: str = "unknown"
    description: str = "Unknown device type"

    @abstractmethod
    async def validate(
        self,
        client: "TelnetClient",
        reader: "LineReader",
        writer: "LineWriter",
    ) -> None:
        """Check the peer and perform the opening handshake.

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
            If the peer is not the expected device
        """
        pass

    async def __call__(
        self,
        client: "TelnetClient",
        reader: "LineReader",
        writer: "LineWriter",
    ) -> None:
        await self.validate(client, reader, writer)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
