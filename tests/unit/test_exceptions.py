"""
Tests for the SerginhoError hierarchy and its structured-log form.
"""

from serginho.core.exceptions import (
    ChainExhaustedError,
    ErrorCode,
    ProviderError,
    SerginhoError,
    SpecialistNotFoundError,
)


def test_to_dict_shape():
    error = ChainExhaustedError(details={"attempts": [{"provider": "llama-8b"}]})

    assert error.to_dict() == {
        "error_type": "ChainExhaustedError",
        "error_code": 3002,
        "message": "All providers failed",
        "details": {"attempts": [{"provider": "llama-8b"}]},
    }


def test_provider_error_merges_provider_and_status():
    error = ProviderError("llama-70b", "rate limited", status=429, details={"retry_after": 2})

    assert error.error_code == ErrorCode.PROVIDER_FAILED
    assert error.details == {"provider": "llama-70b", "status": 429, "retry_after": 2}
    assert isinstance(error, SerginhoError)


def test_specialist_not_found_keeps_id():
    error = SpecialistNotFoundError("astrologer")
    assert error.message == "Specialist not found"
    assert error.specialist_id == "astrologer"
    assert error.to_dict()["error_code"] == 1002
