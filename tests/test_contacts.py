from __future__ import annotations

import logging

import pytest

from railbook.contacts import is_valid_email, normalize_email


def test_plain_address_is_unchanged() -> None:
    assert normalize_email("name@domain.com") == "name@domain.com"


def test_single_encoded_address_is_decoded() -> None:
    assert normalize_email("name%40domain.com") == "name@domain.com"


def test_double_encoded_address_is_decoded_twice() -> None:
    assert normalize_email("name%2540domain.com") == "name@domain.com"


def test_whitespace_and_empty_values() -> None:
    assert normalize_email("  name@domain.com \n") == "name@domain.com"
    assert normalize_email(None) == ""
    assert normalize_email("") == ""


def test_undecodable_address_is_returned_as_received(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="railbook.contacts"):
        assert normalize_email("name%40%FFdomain.com") == "name%40%FFdomain.com"

    assert "Could not decode" in caplog.text


def test_unrecognised_shape_is_logged(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="railbook.contacts"):
        assert normalize_email("not-an-address") == "not-an-address"

    assert "Unrecognised e-mail format" in caplog.text


@pytest.mark.parametrize(
    "raw",
    [
        "name@domain.com",
        "name%40domain.com",
        "name%2540domain.com",
        "name%252540domain.com",
        "not-an-address",
        "",
    ],
)
def test_normalization_is_idempotent(raw: str) -> None:
    once = normalize_email(raw)
    assert normalize_email(once) == once


def test_is_valid_email() -> None:
    assert is_valid_email("name@domain.com")
    assert not is_valid_email("name%40domain.com")
    assert not is_valid_email("name@domain")
    assert not is_valid_email("")
    assert not is_valid_email(None)
