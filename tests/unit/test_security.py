"""Unit tests for CSRF tokens, field encryption, rate limiting and secure records."""

import pytest
from accountform.core.exceptions import CsrfError, ResourceNotFoundError
from core.csrf import CsrfManager
from core.encryption import FieldCipher, hash_value
from core.logging_utils import sanitize_email, sanitize_identifier, sanitize_phone
from core.rate_limit import InMemoryRateLimitStore
from services.company_records import SecureCompanyRepository


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestCsrfManager:
    """Tests for server-issued anti-forgery tokens."""

    def test_issued_token_validates(self):
        manager = CsrfManager(ttl_seconds=60)
        session_id, token = manager.issue()

        manager.validate(session_id, token)
        assert len(token) == 64
        assert manager.active_sessions == 1

    def test_unknown_session_gets_new_id(self):
        manager = CsrfManager()
        session_id, _ = manager.issue("client-chosen")
        assert session_id != "client-chosen"

    def test_reissue_rotates_token(self):
        manager = CsrfManager()
        session_id, first = manager.issue()
        same_id, second = manager.issue(session_id)

        assert same_id == session_id
        assert first != second
        with pytest.raises(CsrfError):
            manager.validate(session_id, first)
        manager.validate(session_id, second)

    @pytest.mark.parametrize(
        "session_id,token",
        [(None, "x"), ("sid", None), ("unknown", "x" * 64)],
    )
    def test_missing_or_unknown(self, session_id, token):
        with pytest.raises(CsrfError) as exc_info:
            CsrfManager().validate(session_id, token)
        assert exc_info.value.http_status == 403

    def test_mismatch(self):
        manager = CsrfManager()
        session_id, token = manager.issue()
        with pytest.raises(CsrfError):
            manager.validate(session_id, token[::-1])

    def test_expired_token(self):
        clock = FakeClock()
        manager = CsrfManager(ttl_seconds=60, clock=clock)
        session_id, token = manager.issue()
        clock.now += 61

        with pytest.raises(CsrfError):
            manager.validate(session_id, token)
        assert manager.active_sessions == 0

    def test_revoke(self):
        manager = CsrfManager()
        session_id, token = manager.issue()
        manager.revoke(session_id)
        with pytest.raises(CsrfError):
            manager.validate(session_id, token)


class TestFieldCipher:
    """Tests for AES-GCM field encryption."""

    def test_round_trip(self):
        cipher = FieldCipher.from_secret("a" * 64)
        token = cipher.encrypt("40483304800022")

        assert token.count(":") == 2
        assert "40483304800022" not in token
        assert cipher.decrypt(token) == "40483304800022"

    def test_nonce_makes_tokens_unique(self):
        cipher = FieldCipher.from_secret("passphrase")
        assert cipher.encrypt("same") != cipher.encrypt("same")

    def test_wrong_key_fails(self):
        token = FieldCipher.from_secret("first secret").encrypt("404833048")
        with pytest.raises(ValueError):
            FieldCipher.from_secret("second secret").decrypt(token)

    def test_tampered_token_fails(self):
        cipher = FieldCipher.from_secret("secret")
        nonce, tag, ciphertext = cipher.encrypt("404833048").split(":")
        tampered = f"{nonce}:{tag}:{'00' * (len(ciphertext) // 2)}"
        with pytest.raises(ValueError):
            cipher.decrypt(tampered)

    def test_malformed_token(self):
        with pytest.raises(ValueError):
            FieldCipher.from_secret("secret").decrypt("not-a-token")

    def test_key_length_enforced(self):
        with pytest.raises(ValueError):
            FieldCipher(b"short")

    def test_hash_value(self):
        assert hash_value("abc") == (
            "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
        )


class TestRateLimitStore:
    """Tests for the fixed-window in-memory store."""

    def test_allows_up_to_limit(self):
        store = InMemoryRateLimitStore(max_requests=3, window_seconds=60, clock=FakeClock())

        decisions = [store.check("1.2.3.4") for _ in range(4)]

        assert [d.allowed for d in decisions] == [True, True, True, False]
        assert decisions[2].remaining == 0

    def test_keys_are_independent(self):
        store = InMemoryRateLimitStore(max_requests=1, window_seconds=60, clock=FakeClock())
        assert store.check("a").allowed
        assert store.check("b").allowed
        assert not store.check("a").allowed

    def test_window_resets(self):
        clock = FakeClock()
        store = InMemoryRateLimitStore(max_requests=1, window_seconds=60, clock=clock)
        store.check("a")
        assert not store.check("a").allowed

        clock.now += 60
        assert store.check("a").allowed

    def test_retry_after(self):
        clock = FakeClock()
        store = InMemoryRateLimitStore(max_requests=1, window_seconds=900, clock=clock)
        store.check("a")
        clock.now += 100

        decision = store.check("a")
        assert decision.retry_after(clock.now) == 800
        assert store.stats()["tracked_clients"] == 1


class TestSecureCompanyRepository:
    """Tests for encrypted company records."""

    def test_identifiers_encrypted_at_rest(self):
        repository = SecureCompanyRepository(FieldCipher.from_secret("secret"))

        record = repository.create(
            {
                "siren": "404833048",
                "siret": "40483304800022",
                "tvaIntracom": "FR83404833048",
                "companyName": "<b>ACME</b>",
                "city": "Paris",
                "nafApe": "62.01Z",
            }
        )

        assert record["siren"] != "404833048"
        assert record["companyName"] == "bACME/b"
        assert repository.encrypted_fields(record) == ["siren", "siret", "tvaIntracom"]
        assert len(record["integrity_hash"]) == 64

        stored = repository.get(record["id"])
        assert stored["siren"] == "404833048"
        assert stored["tvaIntracom"] == "FR83404833048"
        assert "integrity_hash" not in stored

    def test_optional_vat_is_skipped(self):
        repository = SecureCompanyRepository(FieldCipher.from_secret("secret"))
        record = repository.create({"siren": "404833048", "tvaIntracom": None})
        assert repository.encrypted_fields(record) == ["siren"]

    def test_unknown_id(self):
        repository = SecureCompanyRepository(FieldCipher.from_secret("secret"))
        with pytest.raises(ResourceNotFoundError):
            repository.get("missing")


class TestLogSanitizers:
    """Tests for PII masking in logs."""

    def test_email(self):
        assert sanitize_email("achats@acme.fr") == "a***@acme.fr"
        assert sanitize_email(None) == "***"

    def test_identifier(self):
        assert sanitize_identifier("40483304800022") == "404***22"
        assert sanitize_identifier("123") == "***"

    def test_phone(self):
        assert sanitize_phone("01 23 45 67 89") == "***89"
        assert sanitize_phone("12") == "***"
