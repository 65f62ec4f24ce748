import pytest

from simplecache.core.key_validator import validate_key, validate_keys
from simplecache.domain.exceptions import InvalidArgumentError, InvalidKeyError


@pytest.mark.parametrize("key", ["a", "user_42", "Menu.Top-Level", "ключ", "with space", "[brackets]", "a" * 1000])
def test_valid_keys_are_returned_unchanged(key):
    assert validate_key(key) == key


@pytest.mark.parametrize("char", list("{}()/\\@:"))
def test_reserved_characters_are_rejected(char):
    with pytest.raises(InvalidKeyError, match="reserved"):
        validate_key(f"prefix{char}suffix")


def test_empty_key_is_rejected():
    with pytest.raises(InvalidKeyError, match="should not be empty"):
        validate_key("")


@pytest.mark.parametrize("key", [None, 42, 1.5, b"bytes", ["list"]])
def test_non_string_keys_are_rejected(key):
    with pytest.raises(InvalidKeyError, match="should be a string"):
        validate_key(key)


def test_keys_are_case_sensitive():
    assert validate_key("Key") != validate_key("key")


def test_invalid_key_error_is_a_value_error():
    """Callers catching the standard ValueError also catch key errors."""
    assert issubclass(InvalidKeyError, InvalidArgumentError)
    assert issubclass(InvalidKeyError, ValueError)


def test_validate_keys_checks_every_key():
    with pytest.raises(InvalidKeyError):
        validate_keys(["good", "also-good", "bad@key"])


def test_validate_keys_accepts_generators():
    assert validate_keys(k for k in ["a", "b"]) == ["a", "b"]


@pytest.mark.parametrize("keys", ["single-string", b"bytes", 5, None])
def test_validate_keys_rejects_non_iterables_and_strings(keys):
    with pytest.raises(InvalidKeyError, match="iterable"):
        validate_keys(keys)
