import pytest

from lspproxy.jsonrpc import (
    ErrorCode,
    Failure,
    InvalidCall,
    MethodCall,
    Notification,
    RequestId,
    RpcError,
    Success,
    error_code_from_int,
    error_code_name,
    output_result,
    parse_call,
    parse_output,
    parse_params,
)


def test_request_id_json_round_trip():
    assert RequestId.from_json(5).to_json() == 5
    assert RequestId.from_json("abc").to_json() == "abc"


@pytest.mark.parametrize("bad", [True, 1.5, None, [1], 2**31, -(2**31) - 1])
def test_request_id_rejects_bad_values(bad):
    with pytest.raises(ValueError):
        RequestId.from_json(bad)


def test_request_id_display_distinguishes_strings():
    assert str(RequestId(92)) == "92"
    assert str(RequestId("92")) == '"92"'


def test_request_id_ordering_puts_numbers_first():
    ids = [RequestId("a"), RequestId(3), RequestId(1)]
    assert sorted(ids) == [RequestId(1), RequestId(3), RequestId("a")]


def test_request_id_number_and_string_are_distinct_keys():
    assert len({RequestId(1), RequestId("1"), RequestId(1)}) == 2


def test_error_codes_round_trip():
    for code in ErrorCode:
        assert error_code_from_int(int(code)) is code
    assert error_code_from_int(-32700) is ErrorCode.PARSE_ERROR
    assert error_code_from_int(-32800) is ErrorCode.REQUEST_CANCELED


def test_unknown_error_code_stays_integer():
    assert error_code_from_int(5) == 5


def test_error_code_names():
    assert error_code_name(ErrorCode.METHOD_NOT_FOUND) == "MethodNotFound"
    assert error_code_name(7) == "ServerError(7)"


def test_rpc_error_message_and_dict():
    err = RpcError(-32601, "Method not found: foo")
    assert err.code is ErrorCode.METHOD_NOT_FOUND
    assert str(err).endswith(": Method not found: foo")
    as_dict = err.to_dict()
    assert as_dict == {"code": -32601, "message": "Method not found: foo"}
    assert RpcError.from_dict(as_dict) == err


def test_rpc_error_keeps_data():
    err = RpcError(12, "boom", {"detail": [1, 2]})
    assert RpcError.from_dict(err.to_dict()) == err
    assert err.to_dict()["data"] == {"detail": [1, 2]}


def test_rpc_error_from_dict_rejects_missing_message():
    with pytest.raises(ValueError):
        RpcError.from_dict({"code": -32600})


def test_invalid_params_code():
    err = RpcError.invalid_params("bad")
    assert err.code is ErrorCode.INVALID_PARAMS
    assert err.message == "bad"


def test_parse_method_call_round_trip():
    value = {
        "jsonrpc": "2.0",
        "method": "workspace/configuration",
        "params": {"items": []},
        "id": 1,
    }
    call = parse_call(value)
    assert call == MethodCall(
        method="workspace/configuration",
        id=RequestId(1),
        params={"items": []},
        jsonrpc="2.0",
    )
    assert parse_call(call.to_dict()) == call


def test_parse_notification_without_params():
    call = parse_call({"jsonrpc": "2.0", "method": "initialized"})
    assert call == Notification(method="initialized", jsonrpc="2.0")
    as_dict = call.to_dict()
    assert "params" not in as_dict
    assert as_dict["method"] == "initialized"


def test_notification_with_null_version_serializes_it():
    assert Notification(method="exit").to_dict() == {"jsonrpc": None, "method": "exit"}


def test_parse_invalid_call():
    assert parse_call({"id": 7}) == InvalidCall(RequestId(7))
    assert parse_call({}).id == RequestId("null")


@pytest.mark.parametrize(
    "value",
    [
        {"method": "x", "foo": 1},
        {"jsonrpc": "1.0", "method": "x"},
        {"method": "x", "params": 3},
        [1, 2],
    ],
)
def test_parse_call_rejects(value):
    with pytest.raises(ValueError):
        parse_call(value)


def test_parse_params():
    assert parse_params([1, 2]) == [1, 2]
    assert parse_params(None) is None
    with pytest.raises(RpcError) as info:
        parse_params(3)
    assert info.value.code is ErrorCode.INVALID_PARAMS


def test_parse_output_success():
    output = parse_output({"jsonrpc": "2.0", "id": 1, "result": {"a": 1}})
    assert output == Success(result={"a": 1}, id=RequestId(1), jsonrpc="2.0")
    assert output_result(output) == {"a": 1}
    assert parse_output(output.to_dict()) == output


def test_parse_output_null_result():
    output = parse_output({"id": 4, "result": None})
    assert output == Success(result=None, id=RequestId(4))


def test_parse_output_failure_raises_on_result():
    value = {"id": "x", "error": {"code": -32603, "message": "oops"}}
    output = parse_output(value)
    assert isinstance(output, Failure)
    assert output.id == RequestId("x")
    assert parse_output(output.to_dict()) == output
    with pytest.raises(RpcError) as info:
        output_result(output)
    assert info.value == RpcError(-32603, "oops")


def test_parse_output_rejects_neither():
    with pytest.raises(ValueError):
        parse_output({"id": 1})