import pytest

from dxbuild.errors import (
    BuildFailed,
    CargoError,
    CustomError,
    DxError,
    ParseFailure,
    RuntimeFailure,
)


@pytest.mark.parametrize(
    ("cls", "prefix"),
    [
        (BuildFailed, "Build Failed: "),
        (CargoError, "Cargo Error: "),
        (ParseFailure, "Format failed: "),
        (RuntimeFailure, "Runtime Error: "),
        (CustomError, ""),
        (DxError, ""),
    ],
)
def test_message_prefix(cls, prefix):
    err = cls("boom")
    assert str(err) == prefix + "boom"
    assert err.message == "boom"


@pytest.mark.parametrize(
    "cls", [BuildFailed, CargoError, ParseFailure, RuntimeFailure, CustomError]
)
def test_subclasses_caught_as_base(cls):
    err = cls("failure")
    caught = None
    try:
        raise err
    except DxError as exc:
        caught = exc
    assert caught is err
    assert caught.message == "failure"
    assert str(caught).endswith("failure")


def test_non_string_message_is_converted():
    err = DxError(42)
    assert err.message == "42"
    assert str(err) == "42"