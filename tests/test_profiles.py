"""Tests for device profiles."""

import asyncio

import pytest

from lib.avtelnet.client import TelnetClient
from lib.avtelnet.exceptions import UnrecognizedDeviceError
from lib.avtelnet.profiles.custom import CustomProfile
from lib.avtelnet.profiles.kaleidescape import KaleidescapeProfile
from lib.avtelnet.profiles.registry import ProfileRegistry
from lib.avtelnet.profiles.trinnov import TrinnovProfile
from lib.avtelnet.streams import LineReader, LineWriter
from tests.fake_streams import FakeWriter


def handshake_streams(greeting: bytes | None) -> tuple[LineReader, LineWriter, FakeWriter]:
    stream = asyncio.StreamReader()
    if greeting is not None:
        stream.feed_data(greeting)
    stream.feed_eof()
    fake = FakeWriter(asyncio.StreamReader())
    return LineReader(stream), LineWriter(fake), fake


def test_profile_registry() -> None:
    """Test profile registry."""
    assert isinstance(ProfileRegistry.get("trinnov"), TrinnovProfile)
    assert isinstance(ProfileRegistry.get("custom", announce="HELLO"), CustomProfile)

    profile = ProfileRegistry.get("kaleidescape", serial_number="000000123456")
    assert isinstance(profile, KaleidescapeProfile)

    with pytest.raises(ValueError):
        ProfileRegistry.get("unknown")
    with pytest.raises(ValueError):
        ProfileRegistry.get("kaleidescape")
    with pytest.raises(ValueError):
        ProfileRegistry.get("trinnov", colour="blue")

    assert {"custom", "kaleidescape", "trinnov"} <= set(ProfileRegistry.list_profiles())


def test_profile_registry_register() -> None:
    """Test registering an extra profile."""

    class MediaPlayerProfile(CustomProfile):
        name = "media-player"

    ProfileRegistry.register("media-player", MediaPlayerProfile)
    assert isinstance(ProfileRegistry.get("media-player"), MediaPlayerProfile)


@pytest.mark.asyncio
async def test_trinnov_handshake() -> None:
    """Test Trinnov greeting check and client announcement."""
    client = TelnetClient("altitude", 44100)
    reader, writer, fake = handshake_streams(b"Welcome on Trinnov Optimizer (Version 4.3.2, ID 1)\n")

    await TrinnovProfile()(client, reader, writer)

    assert fake.chunks == [b"id avtelnet\n"]


@pytest.mark.asyncio
async def test_trinnov_rejects_other_devices() -> None:
    """Test an unexpected greeting or a silent close is rejected."""
    client = TelnetClient("altitude", 44100)

    reader, writer, fake = handshake_streams(b"SSH-2.0-OpenSSH_9.6\n")
    with pytest.raises(UnrecognizedDeviceError) as exc_info:
        await TrinnovProfile().validate(client, reader, writer)
    assert exc_info.value.greeting == "SSH-2.0-OpenSSH_9.6"
    assert fake.chunks == []

    reader, writer, fake = handshake_streams(None)
    with pytest.raises(UnrecognizedDeviceError):
        await TrinnovProfile().validate(client, reader, writer)


@pytest.mark.asyncio
async def test_kaleidescape_enables_events() -> None:
    """Test Kaleidescape profile subscribes to player events."""
    client = TelnetClient("player", 10000)
    reader, writer, fake = handshake_streams(None)

    await KaleidescapeProfile(serial_number="000000123456").validate(client, reader, writer)

    assert fake.chunks == [b"01/1/ENABLE_EVENTS:#000000123456:\n"]


@pytest.mark.asyncio
async def test_custom_profile_without_settings_does_nothing() -> None:
    """Test the bare custom profile neither reads nor writes."""
    client = TelnetClient("device", 23)
    reader, writer, fake = handshake_streams(b"first line\n")

    await CustomProfile().validate(client, reader, writer)

    assert fake.chunks == []
    assert await reader.readline() == "first line"
