"""
Event and method names.

BridgeEvent — emitted by WalletBridge to the chat layer.
HandleEvent — emitted by a connection handle to its own listeners.
RelayEvent  — Socket.IO events exchanged with the signing relay sidecar.
SignMethod  — JSON-RPC methods requested from the wallet.
"""


class BridgeEvent:
    WALLET_CONNECTED = "walletConnected"
    PAIRING_FAILED = "pairingFailed"


class HandleEvent:
    CONNECT = "connect"
    DISCONNECT = "disconnect"


class RelayEvent:
    READY = "ready"
    PAIRING_CREATE = "pairing:create"
    PAIRING_APPROVED = "pairing:approved"
    PAIRING_REJECTED = "pairing:rejected"
    SESSION_REQUEST = "session:request"
    SESSION_RESPONSE = "session:response"
    SESSION_DISCONNECT = "session:disconnect"


class SignMethod:
    SEND_TRANSACTION = "eth_sendTransaction"
    SIGN_TRANSACTION = "eth_signTransaction"
    SIGN = "eth_sign"
    PERSONAL_SIGN = "personal_sign"
    SIGN_TYPED_DATA = "eth_signTypedData"
    CHAIN_ID = "eth_chainId"


REQUIRED_METHODS = [
    SignMethod.SEND_TRANSACTION,
    SignMethod.SIGN_TRANSACTION,
    SignMethod.SIGN,
    SignMethod.PERSONAL_SIGN,
    SignMethod.SIGN_TYPED_DATA,
    SignMethod.CHAIN_ID,
]

REQUIRED_EVENTS = ["chainChanged", "accountsChanged"]

# Reason sent with a user initiated disconnect
USER_DISCONNECTED = {"code": 6000, "message": "User disconnected."}
