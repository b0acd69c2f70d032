"""Trinnov Altitude processor profile."""

from lib.avtelnet.profiles.custom import CustomProfile

GREETING_PREFIX = "Welcome on Trinnov Optimizer ("


class TrinnovProfile(CustomProfile):
    """Profile for Trinnov Altitude processors.

    The processor identifies itself with a welcome line; the client then
    announces itself with ``id <client_id>``.
    """

    name = "trinnov"
    description = "Trinnov Altitude home-theater processor"

    def __init__(self, client_id: str = "avtelnet") -> None:
        """Initialize Trinnov profile.

        Parameters
        ----------
        client_id : str, optional
            Name announced to the processor, by default "avtelnet"
        """
        super().__init__(greeting_prefix=GREETING_PREFIX, announce=f"id {client_id}")
        self.client_id = client_id
