"""
wallet-bridge — wallet connection sessions for chat bots.

Pairs a user's wallet app with the bot, tracks one session per user and
relays transaction signing requests, so the bot never holds a private key.
"""

from wallet_bridge.client import WalletBridge
from wallet_bridge.config import BridgeSettings
from wallet_bridge.registry import SessionRegistry
from wallet_bridge.negotiator import ConnectionNegotiator
from wallet_bridge.relay import TransactionRelay
from wallet_bridge.errors import (
    WalletBridgeError,
    SessionError,
    SessionNotFound,
    SessionExpired,
    WalletNotConnected,
    ProtocolConfigError,
    ConnectionTimeout,
    ChainMismatch,
    TransactionError,
    TransactionRejected,
    TransactionTimeout,
    TransactionFailed,
    TransactionInProgress,
)
from wallet_bridge.models.events import BridgeEvent, SignMethod
from wallet_bridge.models.session import ConnectionStatus, WalletConnected
from wallet_bridge.models.transaction import SendResult, TransactionPayload

__version__ = "0.1.0"
__all__ = [
    "WalletBridge",
    "BridgeSettings",
    "SessionRegistry",
    "ConnectionNegotiator",
    "TransactionRelay",
    "WalletBridgeError",
    "SessionError",
    "SessionNotFound",
    "SessionExpired",
    "WalletNotConnected",
    "ProtocolConfigError",
    "ConnectionTimeout",
    "ChainMismatch",
    "TransactionError",
    "TransactionRejected",
    "TransactionTimeout",
    "TransactionFailed",
    "TransactionInProgress",
    "BridgeEvent",
    "SignMethod",
    "ConnectionStatus",
    "WalletConnected",
    "SendResult",
    "TransactionPayload",
]
