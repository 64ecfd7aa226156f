import bcrypt
import pytest

from src.api.error import ConfigurationError
from src.api.utils.passwords import CredentialStore


def test_hash_embeds_configured_cost(credentials):
    password_hash = credentials.hash("SecurePass123")

    assert password_hash.startswith("$2b$04$")
    assert CredentialStore.cost_of(password_hash) == 4
    assert password_hash != "SecurePass123"


def test_verify_accepts_correct_and_rejects_wrong_password(credentials):
    password_hash = credentials.hash("SecurePass123")

    assert credentials.verify("SecurePass123", password_hash) is True
    assert credentials.verify("SecurePass124", password_hash) is False


def test_same_password_hashes_differently(credentials):
    assert credentials.hash("SecurePass123") != credentials.hash("SecurePass123")


def test_verify_malformed_hash_is_a_mismatch(credentials):
    assert credentials.verify("SecurePass123", "not-a-bcrypt-hash") is False
    assert credentials.verify("SecurePass123", "") is False


def test_hash_rejects_password_over_72_bytes(credentials):
    with pytest.raises(ValueError):
        credentials.hash("A1" + "x" * 71)


@pytest.mark.parametrize("rounds", [None, "", "twelve", 3, 32])
def test_invalid_cost_factor_is_a_configuration_error(rounds):
    with pytest.raises(ConfigurationError):
        CredentialStore(rounds=rounds)


def test_cost_factor_accepts_string_from_environment():
    assert CredentialStore(rounds="5").rounds == 5


def test_needs_rehash_when_stored_cost_is_lower():
    store = CredentialStore(rounds=5)
    weaker = bcrypt.hashpw(b"SecurePass123", bcrypt.gensalt(4)).decode()

    assert store.needs_rehash(weaker) is True
    assert store.needs_rehash(store.hash("SecurePass123")) is False
    # Old hashes keep verifying after the cost is raised
    assert store.verify("SecurePass123", weaker) is True


@pytest.mark.asyncio
async def test_async_variants_run_on_worker_pool(credentials):
    password_hash = await credentials.hash_async("SecurePass123")

    assert await credentials.verify_async("SecurePass123", password_hash) is True
    assert await credentials.verify_async("wrong", password_hash) is False
    await credentials.dummy_verify_async()
