import time

import pytest
from fastapi import Response

from tracker.core.config import SessionSettings
from tracker.services import SessionCipher, SessionCookieJar
from tracker.utils.pkce import code_challenge, generate_code_verifier

SESSION_SETTINGS = SessionSettings(
    SESSION_SECRET="jar-secret", SESSION_COOKIE_SECURE=True
)


def _jar(cookies: dict | None = None) -> SessionCookieJar:
    cipher = SessionCipher(secret=SESSION_SETTINGS.secret)
    return SessionCookieJar(cookies or {}, cipher=cipher, settings=SESSION_SETTINGS)


def test_session_cipher_roundtrip() -> None:
    cipher = SessionCipher(secret="super-secret-key")

    sealed = cipher.seal({"access_token": "abc"})

    assert "abc" not in sealed
    assert cipher.unseal(sealed) == {"access_token": "abc"}


def test_session_cipher_rejects_other_secret() -> None:
    sealed = SessionCipher(secret="one").seal({"a": 1})

    with pytest.raises(ValueError):
        SessionCipher(secret="two").unseal(sealed)


def test_session_cipher_rejects_expired_value() -> None:
    cipher = SessionCipher(secret="secret", max_age_seconds=10)
    stale = cipher._fernet.encrypt_at_time(b'{"a":1}', int(time.time()) - 60)

    with pytest.raises(ValueError):
        cipher.unseal(stale.decode("utf-8"))


def test_session_cipher_requires_secret() -> None:
    with pytest.raises(ValueError):
        SessionCipher(secret="")


def test_jar_returns_session_it_stored(make_session) -> None:
    jar = _jar()
    jar.set_session(make_session(access_token="stored"))

    session = jar.get_session()

    assert session is not None
    assert session.access_token == "stored"


def test_jar_discards_unreadable_session() -> None:
    jar = _jar({SESSION_SETTINGS.cookie_name: "garbage"})

    assert jar.get_session() is None
    assert jar.pending_names == [SESSION_SETTINGS.cookie_name]


def test_jar_writes_cookie_attributes(make_session) -> None:
    jar = _jar({SESSION_SETTINGS.verifier_cookie_name: "v"})
    jar.set_session(make_session())
    jar.clear_code_verifier()

    response = jar.write_to(Response())
    headers = response.headers.getlist("set-cookie")

    session_header = next(h for h in headers if h.startswith(f"{SESSION_SETTINGS.cookie_name}="))
    assert "HttpOnly" in session_header
    assert "Secure" in session_header
    assert "SameSite=lax" in session_header
    verifier_header = next(
        h for h in headers if h.startswith(f"{SESSION_SETTINGS.verifier_cookie_name}=")
    )
    assert "Max-Age=0" in verifier_header


def test_code_verifier_reads_pending_value() -> None:
    jar = _jar()
    assert jar.code_verifier is None

    jar.set_code_verifier("fresh")

    assert jar.code_verifier == "fresh"


def test_pkce_challenge_matches_rfc_example() -> None:
    verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"

    assert code_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"


def test_generated_verifiers_are_unique_and_in_range() -> None:
    verifiers = {generate_code_verifier() for _ in range(20)}

    assert len(verifiers) == 20
    assert all(43 <= len(v) <= 128 for v in verifiers)
