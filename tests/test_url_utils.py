# tests/test_url_utils.py
import pytest

from salescrew.utils.url_utils import extract_domain, get_protocol, is_valid_url, normalize_url


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("acme.io", "https://acme.io"),
        ("  acme.io  ", "https://acme.io"),
        ("http://acme.io", "http://acme.io"),
        ("HTTPS://Acme.io/path", "HTTPS://Acme.io/path"),
        ("", ""),
        ("   ", ""),
    ],
)
def test_normalize_url(raw: str, expected: str) -> None:
    assert normalize_url(raw) == expected


def test_normalize_url_is_idempotent() -> None:
    once = normalize_url("www.acme.io/about")
    assert normalize_url(once) == once


def test_is_valid_url() -> None:
    assert is_valid_url("acme.io")
    assert is_valid_url("https://sub.acme.io/pricing")
    assert not is_valid_url("")
    assert not is_valid_url("not a url")
    assert not is_valid_url("https://acme.io:notaport")


def test_extract_domain_lowercases_host() -> None:
    assert extract_domain("https://WWW.Acme.IO/path?q=1") == "www.acme.io"
    assert extract_domain("acme.io") == "acme.io"
    assert extract_domain("") == ""


def test_get_protocol() -> None:
    assert get_protocol("http://acme.io") == "http"
    assert get_protocol("acme.io") == "https"
    assert get_protocol("") is None
