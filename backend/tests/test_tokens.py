import pytest
from conftest import FakeClock, SEVEN_DAYS, TEST_SECRET
from lamont.core.config import Settings
from lamont.core.tokens import (
    EdgeTokenService,
    JoseTokenService,
    build_token_service,
    list_token_backends,
)

BACKENDS = [JoseTokenService, EdgeTokenService]


@pytest.fixture(params=BACKENDS, ids=["jose", "edge"])
def service_class(request):
    return request.param


def test_issued_token_verifies_with_claims(service_class):
    clock = FakeClock()
    service = service_class(TEST_SECRET, SEVEN_DAYS, clock=clock)

    token = service.issue("user-1", "ada@example.com", "admin")
    payload = service.verify(token)

    assert payload is not None
    assert payload.user_id == "user-1"
    assert payload.email == "ada@example.com"
    assert payload.role == "admin"
    assert payload.issued_at == int(clock.now)
    assert payload.expires_at == int(clock.now) + SEVEN_DAYS


def test_expiry_boundary(service_class):
    clock = FakeClock()
    service = service_class(TEST_SECRET, SEVEN_DAYS, clock=clock)
    token = service.issue("user-1", "ada@example.com", "user")

    clock.advance(SEVEN_DAYS - 1)
    assert service.verify(token) is not None

    clock.advance(2)
    assert service.verify(token) is None


def test_wrong_key_is_rejected(service_class):
    issuer = service_class(TEST_SECRET, SEVEN_DAYS)
    verifier = service_class("a-completely-different-secret", SEVEN_DAYS)

    assert verifier.verify(issuer.issue("user-1", "ada@example.com", "user")) is None


@pytest.mark.parametrize("token", [
    "",
    None,
    "garbage",
    "a.b",
    "a.b.c",
    "eyJhbGciOiJIUzI1NiJ9.eyJzdWIiOiIxIn0.",
    "été.été.été",
])
def test_malformed_tokens_are_rejected(service_class, token):
    service = service_class(TEST_SECRET, SEVEN_DAYS)
    assert service.verify(token) is None


def test_tampered_payload_is_rejected(service_class):
    service = service_class(TEST_SECRET, SEVEN_DAYS)
    other = service.issue("user-2", "eve@example.com", "admin")
    token = service.issue("user-1", "ada@example.com", "user")

    header, _, signature = token.split(".")
    forged = ".".join([header, other.split(".")[1], signature])

    assert service.verify(forged) is None


def test_backends_accept_each_others_tokens():
    clock = FakeClock()
    jose_service = JoseTokenService(TEST_SECRET, SEVEN_DAYS, clock=clock)
    edge_service = EdgeTokenService(TEST_SECRET, SEVEN_DAYS, clock=clock)

    from_jose = jose_service.issue("user-1", "ada@example.com", "user")
    from_edge = edge_service.issue("user-1", "ada@example.com", "user")

    assert edge_service.verify(from_jose).user_id == "user-1"
    assert jose_service.verify(from_edge).user_id == "user-1"


def test_token_without_email_is_rejected():
    service = EdgeTokenService(TEST_SECRET, SEVEN_DAYS)
    token = service._encode({"sub": "user-1", "exp": 9_999_999_999})
    assert service.verify(token) is None


def test_empty_secret_is_refused():
    with pytest.raises(ValueError):
        JoseTokenService("", SEVEN_DAYS)


def test_build_token_service_selects_backend():
    assert set(list_token_backends()) >= {"jose", "edge"}

    edge = build_token_service(Settings(TOKEN_BACKEND="edge", SECRET_KEY=TEST_SECRET))
    assert isinstance(edge, EdgeTokenService)
    assert edge.ttl_seconds == SEVEN_DAYS

    jose_service = build_token_service(Settings(TOKEN_BACKEND="jose", SECRET_KEY=TEST_SECRET))
    assert isinstance(jose_service, JoseTokenService)


def test_build_token_service_rejects_unknown_backend():
    with pytest.raises(ValueError):
        build_token_service(Settings(TOKEN_BACKEND="nope", SECRET_KEY=TEST_SECRET))
