import pytest

from fakes import StubSession
from ogsync.client import Client
from ogsync.errors import DecodeError, SubmitTxErrorV5
from ogsync.tx_submission import read_submit_tx, read_submit_tx_v5

CBOR = "84a400818258203b40265111d8bb3c3c608d95b3a0bf83461ace32d79336579a1939b3aad1c0b700"


def test_submit_tx():
    session = StubSession({"jsonrpc": "2.0", "method": "submitTransaction", "result": {"transaction": {"id": "ab"}}})
    client = Client(session=session)
    response = client.submit_tx(CBOR)
    assert response.id == "ab"
    assert response.error is None
    assert session.posts[0][1] == {
        "jsonrpc": "2.0",
        "method": "submitTransaction",
        "params": {"transaction": {"cbor": CBOR}},
        "id": {},
    }


def test_rejected_tx_is_not_an_exception():
    response = read_submit_tx({
        "jsonrpc": "2.0",
        "error": {"code": 3117, "message": "missing inputs", "data": {"unknownOutputReferences": []}},
    })
    assert response.id == ""
    assert response.error.code == 3117
    assert response.error.data == {"unknownOutputReferences": []}

    with pytest.raises(DecodeError):
        read_submit_tx({"jsonrpc": "2.0"})


def test_submit_tx_v5():
    session = StubSession({"result": "SubmitSuccess"}, {"result": {"SubmitFail": [{"badInputs": []}, "feeTooSmall"]}})
    client = Client(session=session)
    client.submit_tx_v5(CBOR)
    assert session.posts[0][1]["args"] == {"submit": CBOR}

    with pytest.raises(SubmitTxErrorV5) as exc:
        client.submit_tx_v5(CBOR)
    assert exc.value.error_codes() == ["badInputs", "feeTooSmall"]
    assert exc.value.has_error_code("feeTooSmall")
    assert not exc.value.has_error_code("other")


def test_read_submit_tx_v5_shapes():
    read_submit_tx_v5({"result": {"SubmitFail": []}})
    with pytest.raises(SubmitTxErrorV5):
        read_submit_tx_v5({"result": {"SubmitFail": {"valueNotConserved": {}}}})
    with pytest.raises(DecodeError):
        read_submit_tx_v5({"result": {"SubmitFail": "weird"}})
