"""Configuration management for the telnet client."""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientOptions(BaseModel):
    """Connection behaviour shared by all clients."""

    auto_reconnect: bool = True
    connect_timeout: float = Field(default=5.0, gt=0)
    heartbeat_interval: float = Field(default=15.0, gt=0)
    heartbeat_timeout: float = Field(default=3.0, gt=0)
    reconnect_if_connected: bool = False
    encoding: str = "utf-8"
    newline: str = "\n"
    line_limit: int = Field(default=2**16, gt=0)


class DeviceConfig(BaseModel):
    """Configuration for a single device."""

    host: str
    port: int = 23
    profile: str | None = None
    profile_options: dict[str, str] = Field(default_factory=dict)


class TelnetConfig(BaseSettings):
    """Main configuration class."""

    model_config = SettingsConfigDict(
        env_prefix="AVTELNET_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    default_port: int = Field(default=23, description="Default TCP port")

    # Client behaviour
    client: ClientOptions = Field(default_factory=ClientOptions)

    # Devices by name
    devices: dict[str, DeviceConfig] = Field(default_factory=dict)

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_json: bool = Field(default=False, description="Enable JSON logging")
    log_file: str | None = Field(default=None, description="Log file path")

    @classmethod
    def load_from_yaml(cls, path: str | Path) -> "TelnetConfig":
        """Load configuration from YAML file.

        Parameters
        ----------
        path : str | Path
            Path to YAML file

        Returns
        -------
        TelnetConfig
            Loaded configuration
        """
        yaml_path = Path(path)
        if not yaml_path.exists():
            # Return defaults if file doesn't exist
            return cls()

        with open(yaml_path, "r") as f:
            data = yaml.safe_load(f) or {}

        # Extract avtelnet section if present
        section = data.get("avtelnet", {})
        if not section:
            section = data

        return cls(**section)

    def get_device_config(self, target: str, port: int | None = None) -> DeviceConfig:
        """Get device configuration.

        Parameters
        ----------
        target : str
            Configured device name, or a host for an ad-hoc device
        port : int | None, optional
            Port override, by default None

        Returns
        -------
        DeviceConfig
            Device configuration
        """
        if target in self.devices:
            device = self.devices[target]
        else:
            device = DeviceConfig(host=target, port=self.default_port)

        if port is not None:
            device = device.model_copy(update={"port": port})
        return device


def load_config(config_file: str | Path | None = None) -> TelnetConfig:
    """Load configuration from file or environment.

    Parameters
    ----------
    config_file : str | Path | None, optional
        Path to YAML config file, by default None

    Returns
    -------
    TelnetConfig
        Loaded configuration
    """
    if config_file:
        return TelnetConfig.load_from_yaml(config_file)

    # Load from environment variables
    return TelnetConfig()
