# tests/unit/test_errors.py
from yourvoice.core.errors import ApiError, NotFound, Unauthorized, UpstreamFailure, ValidationFailure, error_body


def test_api_error_fields():
    e = ApiError(400, "bad_request", "nope", param="x")
    assert e.status_code == 400
    assert e.code == "bad_request"
    assert e.message == "nope"
    assert e.param == "x"


def test_typed_failures_are_api_errors():
    for exc in (NotFound(), Unauthorized(), ValidationFailure("bad"), UpstreamFailure("down")):
        assert isinstance(exc, ApiError)


def test_unauthorized_variants():
    assert Unauthorized().status_code == 401
    assert Unauthorized("no", forbidden=True).status_code == 403


def test_error_body_shape_with_param():
    body = error_body("bad_request", "nope", param="x")
    assert "error" in body
    assert body["error"]["code"] == "bad_request"
    assert body["error"]["message"] == "nope"
    assert body["error"]["param"] == "x"


def test_error_body_shape_without_param():
    body = error_body("bad_request", "nope")
    assert "error" in body
    assert body["error"]["code"] == "bad_request"
    assert body["error"]["message"] == "nope"
    assert "param" not in body["error"]
