"""
Transaction payloads, the normalized wallet request and pending records.
"""

from typing import Literal, Optional, Union

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

Quantity = Union[int, str]
TxStatus = Literal["pending", "sent", "failed"]


def to_quantity(value: Optional[Quantity]) -> Optional[str]:
    """Normalize an int, decimal string or hex string to a 0x-prefixed hex quantity."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("boolean is not a quantity")
    if isinstance(value, int):
        return hex(value)
    text = value.strip()
    if text.lower().startswith("0x"):
        return "0x" + (text[2:].lower().lstrip("0") or "0")
    return hex(int(text))


class TransactionPayload(BaseModel):
    """Transaction built by the contract facade."""
    to: str
    data: Optional[str] = None
    value: Optional[Quantity] = None
    gas_limit: Optional[Quantity] = None
    gas_price: Optional[Quantity] = None

    model_config = {"populate_by_name": True, "alias_generator": to_camel}


class TxRequest(BaseModel):
    """Request sent to the wallet with eth_sendTransaction."""
    from_: str = Field(alias="from")
    to: str
    data: str = "0x"
    value: str = "0x0"
    gas: str
    gas_price: str = Field(alias="gasPrice")
    chain_id: str = Field(alias="chainId")

    model_config = {"populate_by_name": True}

    def to_params(self) -> dict[str, str]:
        return self.model_dump(by_alias=True)


class PendingTransaction(BaseModel):
    id: str
    description: str = "Transaction"
    tx_request: TxRequest
    status: TxStatus = "pending"
    tx_hash: Optional[str] = None
    error: Optional[str] = None
    created_at: float = 0.0


class SendResult(BaseModel):
    success: bool
    tx_hash: str
    tx_id: str
    address: Optional[str] = None
    deep_link: Optional[str] = None

    model_config = {"populate_by_name": True, "alias_generator": to_camel}
