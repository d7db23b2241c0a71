import pickle

from molgraph.errors import FormatError, LoadError, MolgraphError, error_response


def test_error_response_omits_missing_id() -> None:
    assert error_response("boom") == {"type": "error", "error": "boom"}
    assert error_response("boom", "req-1") == {"type": "error", "error": "boom", "id": "req-1"}


def test_to_response_uses_message() -> None:
    exc = FormatError("too_short", "Invalid SDF format: file too short")
    assert exc.to_response("x") == {
        "type": "error",
        "id": "x",
        "error": "Invalid SDF format: file too short",
    }
    assert isinstance(exc, MolgraphError)


def test_errors_survive_pickling() -> None:
    exc = LoadError("file_not_found", "File not found", "/tmp/missing.pdb")
    restored = pickle.loads(pickle.dumps(exc))

    assert type(restored) is LoadError
    assert restored.code == "file_not_found"
    assert restored.message == "File not found"
    assert restored.details == "/tmp/missing.pdb"
