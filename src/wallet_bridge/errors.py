"""
wallet-bridge error types.

Every failure that reaches the chat layer is one of these, with a stable
``code`` and the underlying message kept in ``details`` for diagnostics.
"""

from typing import Any, Optional


class WalletBridgeError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details


class SessionError(WalletBridgeError):
    def __init__(self, message: str, code: str = "session_error", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class SessionNotFound(SessionError):
    def __init__(self, message: str = "No session found", details: Optional[dict[str, Any]] = None):
        super().__init__(message, "session_not_found", details)


class SessionExpired(SessionError):
    def __init__(self, message: str = "Session timeout", details: Optional[dict[str, Any]] = None):
        super().__init__(message, "session_expired", details)


class WalletNotConnected(WalletBridgeError):
    def __init__(self, message: str = "Wallet not connected", details: Optional[dict[str, Any]] = None):
        super().__init__("wallet_not_connected", message, details)


class ProtocolConfigError(WalletBridgeError):
    """Protocol client unavailable, or the pairing has no topic bound yet."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("protocol_config_error", message, details)


class ConnectionTimeout(WalletBridgeError):
    def __init__(self, message: str = "Connection request expired", details: Optional[dict[str, Any]] = None):
        super().__init__("connection_timeout", message, details)


class ChainMismatch(WalletBridgeError):
    """Connected chain differs from the required chain. Advisory only."""

    def __init__(self, connected: Optional[int], required: int):
        super().__init__(
            "chain_mismatch",
            f"Wallet is on chain {connected}, expected chain {required}",
            {"connected_chain_id": connected, "required_chain_id": required},
        )
        self.connected = connected
        self.required = required


class TransactionError(WalletBridgeError):
    def __init__(self, message: str, code: str = "transaction_error", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class TransactionRejected(TransactionError):
    def __init__(self, message: str = "Transaction was rejected by user", details: Optional[dict[str, Any]] = None):
        super().__init__(message, "transaction_rejected", details)


class TransactionTimeout(TransactionError):
    def __init__(self, message: str = "Transaction request timed out. Please try again.",
                 details: Optional[dict[str, Any]] = None):
        super().__init__(message, "transaction_timeout", details)


class TransactionFailed(TransactionError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message, "transaction_failed", details)


class TransactionInProgress(TransactionError):
    def __init__(self, message: str = "Another transaction is still waiting for approval in your wallet",
                 details: Optional[dict[str, Any]] = None):
        super().__init__(message, "transaction_in_progress", details)
