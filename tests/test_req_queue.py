from lspproxy.jsonrpc import ErrorCode, RequestId
from lspproxy.msg import ABSENT, Request
from lspproxy.req_queue import Incoming, Outgoing, ReqQueue


def test_incoming_register_and_complete():
    incoming = Incoming()
    assert incoming.is_empty()
    incoming.register(RequestId(1), "hover")
    assert not incoming.is_completed(RequestId(1))
    assert incoming.entries() == [(RequestId(1), "hover")]
    assert incoming.values() == ["hover"]
    assert incoming.complete(RequestId(1)) == "hover"
    assert incoming.is_completed(RequestId(1))
    assert incoming.complete(RequestId(1)) is None
    assert incoming.is_empty()


def test_incoming_cancel():
    incoming = Incoming()
    incoming.register(RequestId("r"), object())
    response = incoming.cancel(RequestId("r"))
    assert response.id == RequestId("r")
    assert response.error.code is ErrorCode.REQUEST_CANCELED
    assert response.error.message == "canceled by client"
    assert response.result is ABSENT
    assert incoming.is_completed(RequestId("r"))


def test_incoming_cancel_unknown_request():
    assert Incoming().cancel(RequestId(9)) is None


def test_outgoing_numbers_requests_from_zero():
    outgoing = Outgoing()
    first = outgoing.register("initialize", {"rootUri": None}, "a")
    second = outgoing.register("shutdown", None, "b")
    assert first.id == RequestId(0)
    assert second.id.value == first.id.value + 1
    assert first == Request.new(RequestId(0), "initialize", {"rootUri": None})


def test_outgoing_complete():
    outgoing = Outgoing()
    request = outgoing.register("m", None, {"callback": 1})
    assert outgoing.complete(request.id) == {"callback": 1}
    assert outgoing.complete(request.id) is None


def test_queue_holds_independent_sides():
    queue = ReqQueue()
    queue.incoming.register(RequestId(0), "in")
    request = queue.outgoing.register("m", None, "out")
    assert request.id == RequestId(0)
    assert queue.incoming.complete(RequestId(0)) == "in"
    assert queue.outgoing.complete(RequestId(0)) == "out"
    assert ReqQueue().incoming.is_empty()