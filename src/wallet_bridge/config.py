"""
Runtime settings, read from the environment (or a local ``.env``).

Variable names match the membership bot's deployment: ``CHAIN_ID``,
``GAS_LIMIT``, ``GAS_PRICE``, ``WALLETCONNECT_PROJECT_ID``,
``WALLETCONNECT_BRIDGE``, ``SESSION_TIMEOUT`` (milliseconds) and so on.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BRIDGE = "https://bridge.walletconnect.org"


class BridgeSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Chain
    chain_id: int = Field(default=97, description="Chain every session must be on")

    # Gas defaults applied when the caller omits them
    gas_limit: int = Field(default=1_000_000, description="Default gas limit")
    gas_price: str = Field(default="20000000000", description="Default gas price in wei")

    # Signing protocol
    walletconnect_project_id: str = Field(default="", description="Signing protocol project id")
    walletconnect_bridge: str = Field(default=DEFAULT_BRIDGE, description="Bridge used by manual pairing URIs")
    wallet_relay_url: str = Field(default="", description="Socket.IO URL of the signing relay sidecar")
    relay_ready_timeout_s: float = Field(default=15.0, description="Wait for the relay `ready` event")

    # Timers
    session_timeout: int = Field(default=1_800_000, description="Idle window in milliseconds")
    connection_timeout_s: float = Field(default=300.0, description="How long a pairing may wait for approval")
    request_timeout_s: float = Field(default=60.0, description="How long a signing request may wait")
    sweep_interval_s: float = Field(default=600.0, description="Idle sweep period")
    poll_interval_s: float = Field(default=10.0, description="Connection poll period")

    # Metadata shown by the wallet during pairing
    app_name: str = Field(default="Crypto Membership NFT")
    app_description: str = Field(default="NFT Membership System")
    app_url: str = Field(default="https://chainsx.info")
    app_icon: Optional[str] = Field(default="https://chainsx.info/icon.png")

    log_level: str = Field(default="INFO", description="Logging level")

    @property
    def idle_window_s(self) -> float:
        return self.session_timeout / 1000.0

    @property
    def caip_chain(self) -> str:
        return f"eip155:{self.chain_id}"

    @property
    def protocol_enabled(self) -> bool:
        return bool(self.walletconnect_project_id)

    def app_metadata(self) -> dict[str, object]:
        return {
            "name": self.app_name,
            "description": self.app_description,
            "url": self.app_url,
            "icons": [self.app_icon] if self.app_icon else [],
        }
