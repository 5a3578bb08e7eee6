import pytest

from webauth.auth.passwords import CredentialHasher


def test_hash_then_verify(hasher):
    record = hasher.hash("Aa1!aaaa")
    assert hasher.verify("Aa1!aaaa", record)
    assert not hasher.verify("Aa1!aaab", record)


def test_hash_is_salted_per_call(hasher):
    assert hasher.hash("Aa1!aaaa") != hasher.hash("Aa1!aaaa")


def test_record_does_not_contain_plaintext(hasher):
    record = hasher.hash("Sup3r$ecret")
    assert "Sup3r$ecret" not in record
    assert record.startswith("$argon2id$")


def test_malformed_records_are_a_plain_mismatch(hasher):
    for bad in ("", "not-a-hash", "$argon2id$v=19$m=1024,t=1,p=1$broken", "abcd.1234"):
        assert hasher.verify("Aa1!aaaa", bad) is False


def test_empty_plaintext_never_verifies(hasher):
    record = hasher.hash("Aa1!aaaa")
    assert hasher.verify("", record) is False


def test_decoy_and_unusable_hash(hasher):
    assert hasher.verify_decoy("whatever") is False
    unusable = hasher.unusable_hash()
    assert not hasher.verify("", unusable)
    assert not hasher.verify("password", unusable)


def test_short_salt_rejected():
    with pytest.raises(ValueError):
        CredentialHasher(salt_len=8)


class _CountingHasher:
    def __init__(self, inner):
        self.inner = inner
        self.hash_calls = 0
        self.verify_calls = 0

    def hash(self, plain):
        self.hash_calls += 1
        return self.inner.hash(plain)

    def verify(self, record, plain):
        self.verify_calls += 1
        return self.inner.verify(record, plain)


def test_decoy_costs_one_verify_from_the_first_call(hasher, monkeypatch):
    counting = _CountingHasher(hasher._ph)
    monkeypatch.setattr(hasher, "_ph", counting)

    hasher.verify_decoy("whatever")
    hasher.verify_decoy("again")

    assert counting.hash_calls == 0
    assert counting.verify_calls == 2
