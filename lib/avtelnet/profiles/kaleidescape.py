"""Kaleidescape movie player profile."""

from lib.avtelnet.profiles.custom import CustomProfile


class KaleidescapeProfile(CustomProfile):
    """Profile for Kaleidescape players: subscribes to player events."""

    name = "kaleidescape"
    description = "Kaleidescape movie player"

    def __init__(self, serial_number: str, device_id: str = "01") -> None:
        """Initialize Kaleidescape profile.

        Parameters
        ----------
        serial_number : str
            Player serial number events are enabled for
        device_id : str, optional
            Protocol device id prefix, by default "01"
        """
        if not serial_number:
            raise ValueError("serial_number is required for the kaleidescape profile")

        super().__init__(announce=f"{device_id}/1/ENABLE_EVENTS:#{serial_number}:")
        self.serial_number = serial_number
        self.device_id = device_id
