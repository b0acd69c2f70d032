"""Custom exceptions for the line-oriented telnet client."""


class TelnetError(Exception):
    """Base exception for all client errors."""

    def __init__(self, message: str, address: str | None = None) -> None:
        """Initialize telnet error.

        Parameters
        ----------
        message : str
            Error message
        address : str | None, optional
            ``host:port`` of the device if applicable, by default None
        """
        super().__init__(message)
        self.message = message
        self.address = address

    def __str__(self) -> str:
        """Return string representation of error."""
        if self.address:
            return f"[{self.address}] {self.message}"
        return self.message


class ClientDisposedError(TelnetError):
    """Raised when an operation is invoked on a disposed client."""

    def __init__(self, address: str | None = None) -> None:
        super().__init__("Client has been disposed", address)


class NotConnectedError(TelnetError):
    """Raised when sending without a live connection."""

    pass


class HandshakeError(TelnetError):
    """Raised when the connection validation callback fails.

    The original exception is available as ``__cause__``.
    """

    pass


class StreamError(TelnetError):
    """Raised when reading from or writing to the socket fails."""

    pass


class UnrecognizedDeviceError(TelnetError):
    """Raised by device profiles when the peer is not the expected device."""

    def __init__(
        self,
        message: str,
        address: str | None = None,
        greeting: str | None = None,
    ) -> None:
        """Initialize unrecognized device error.

        Parameters
        ----------
        message : str
            Error message
        address : str | None, optional
            ``host:port`` of the device if applicable, by default None
        greeting : str | None, optional
            Greeting line received from the device, by default None
        """
        super().__init__(message, address)
        self.greeting = greeting
