import pytest

from etlcore.extractors.errors import ErrorKind, ExtractorError


def test_kinds_are_a_closed_set():
    assert {k.value for k in ErrorKind} == {
        "network",
        "http",
        "parse",
        "missing_field",
        "deserialization",
    }


def test_http_error_carries_status():
    err = ExtractorError.http("https://api.example.com/data", 503)
    assert err.kind is ErrorKind.HTTP
    assert err.status == 503
    assert str(err) == "http: https://api.example.com/data returned status 503"


def test_missing_field_names_field():
    err = ExtractorError.missing_field("https://a/b", "data")
    assert err.kind is ErrorKind.MISSING_FIELD
    assert err.field == "data"
    assert err.status is None


def test_deserialization_describes_target():
    err = ExtractorError.deserialization("https://a/b", "int", "not a number", field="data")
    assert err.expected == "int"
    assert "field 'data'" in err.message
    assert "as int" in err.message

    whole = ExtractorError.deserialization("https://a/b", "User", "bad")
    assert whole.field is None
    assert "document" in whole.message


def test_network_error_uses_cause_name_when_message_empty():
    err = ExtractorError.network("https://a/b", TimeoutError())
    assert err.kind is ErrorKind.NETWORK
    assert "TimeoutError" in err.message


def test_is_raisable_and_matchable():
    with pytest.raises(ExtractorError) as info:
        raise ExtractorError.parse("https://a/b", "empty response body")
    assert info.value.kind is ErrorKind.PARSE
    assert repr(info.value).startswith("ExtractorError(kind='parse'")
