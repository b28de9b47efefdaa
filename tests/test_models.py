import pytest

from wallet_bridge.models.session import ApprovedSession, ConnectionStatus
from wallet_bridge.models.transaction import TransactionPayload, TxRequest, to_quantity


def test_to_quantity():
    assert to_quantity(None) is None
    assert to_quantity(0) == "0x0"
    assert to_quantity(1_000_000) == "0xf4240"
    assert to_quantity("20000000000") == "0x4a817c800"
    assert to_quantity("0x00FF") == "0xff"
    assert to_quantity("0x0") == "0x0"
    with pytest.raises(ValueError):
        to_quantity(True)


def test_payload_accepts_camel_case():
    payload = TransactionPayload.model_validate({"to": "0xC0", "gasLimit": 21000, "gasPrice": "5"})
    assert payload.gas_limit == 21000
    assert payload.gas_price == "5"
    assert payload.data is None


def test_tx_request_params_use_wire_names():
    req = TxRequest(from_="0xA", to="0xB", gas="0x1", gas_price="0x2", chain_id="0x61")
    assert req.to_params() == {
        "from": "0xA", "to": "0xB", "data": "0x", "value": "0x0",
        "gas": "0x1", "gasPrice": "0x2", "chainId": "0x61",
    }


def test_approved_session_extraction():
    approved = ApprovedSession.model_validate({
        "topic": "t1",
        "namespaces": {"eip155": {"accounts": ["eip155:97:0xAbC"], "chains": ["eip155:97"]}},
    })
    assert approved.chain_id() == 97
    assert approved.first_address() == "0xAbC"


def test_approved_session_chain_from_accounts():
    approved = ApprovedSession.model_validate({
        "topic": "t1",
        "namespaces": {"eip155": {"accounts": ["eip155:56:0xAbC"]}},
    })
    assert approved.chain_id() == 56


def test_approved_session_without_namespace():
    approved = ApprovedSession(topic="t1")
    assert approved.chain_id() is None
    assert approved.first_address() is None


def test_connection_status_wire_shape():
    status = ConnectionStatus(connected=True, address="0xA", chain_id=97, session_id="s")
    assert status.model_dump(by_alias=True, exclude_none=True) == {
        "connected": True, "address": "0xA", "chainId": 97, "sessionId": "s",
    }
