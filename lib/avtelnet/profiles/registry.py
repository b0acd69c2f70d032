"""Device profile registry."""

from typing import Any

from lib.avtelnet.profiles.base import DeviceProfile
from lib.avtelnet.profiles.custom import CustomProfile
from lib.avtelnet.profiles.kaleidescape import KaleidescapeProfile
from lib.avtelnet.profiles.trinnov import TrinnovProfile

# Registry of available profiles
_PROFILE_REGISTRY: dict[str, type[DeviceProfile]] = {
    "custom": CustomProfile,
    "kaleidescape": KaleidescapeProfile,
    "trinnov": TrinnovProfile,
}


class ProfileRegistry:
    """Registry for device profiles."""

    @staticmethod
    def register(name: str, profile_class: type[DeviceProfile]) -> None:
        """Register a device profile.

        Parameters
        ----------
        name : str
            Profile name
        profile_class : type[DeviceProfile]
            Profile class
        """
        _PROFILE_REGISTRY[name] = profile_class

    @staticmethod
    def get(name: str, **options: Any) -> DeviceProfile:
        """Get a profile by name.

        Parameters
        ----------
        name : str
            Profile name
        **options : Any
            Keyword arguments for the profile constructor

        Returns
        -------
        DeviceProfile
            Profile instance

        Raises
        ------
        ValueError
            If profile not found or the options do not fit it
        """
        if name not in _PROFILE_REGISTRY:
            raise ValueError(f"Unknown profile: {name}")

        profile_class = _PROFILE_REGISTRY[name]
        try:
            return profile_class(**options)
        except TypeError as e:
            raise ValueError(f"Invalid options for profile {name}: {e}") from e

    @staticmethod
    def list_profiles() -> list[str]:
        """List all registered profile names.

        Returns
        -------
        list[str]
            List of profile names
        """
        return list(_PROFILE_REGISTRY.keys())
