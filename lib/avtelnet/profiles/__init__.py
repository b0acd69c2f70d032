"""Connection validation profiles for supported appliances."""

from lib.avtelnet.profiles.base import DeviceProfile
from lib.avtelnet.profiles.custom import CustomProfile
from lib.avtelnet.profiles.kaleidescape import KaleidescapeProfile
from lib.avtelnet.profiles.registry import ProfileRegistry
from lib.avtelnet.profiles.trinnov import TrinnovProfile

__all__ = [
    "DeviceProfile",
    "CustomProfile",
    "TrinnovProfile",
    "KaleidescapeProfile",
    "ProfileRegistry",
]
