"""Unit tests for CredentialStore."""

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from clientportal.core.exceptions import ConflictError
from clientportal.domain.entities.role import Role
from clientportal.domain.services.credential_store import CredentialStore, normalize_email

PASSWORD = "Str0ng!Passw0rd"


@pytest.fixture
def store(db_session, settings):
    return CredentialStore(db_session, settings)


@pytest_asyncio.fixture
async def user(store, db_session):
    user = await store.create_user(
        email="  Grace@Example.COM ",
        raw_password=PASSWORD,
        first_name=" Grace ",
        last_name="Hopper",
        role=Role.STAFF,
    )
    await db_session.commit()
    return user


def test_normalize_email():
    assert normalize_email("  Mixed@Case.IO ") == "mixed@case.io"


@pytest.mark.asyncio
async def test_create_user_normalizes_and_hashes(user):
    assert user.email == "grace@example.com"
    assert user.first_name == "Grace"
    assert user.password_hash != PASSWORD
    assert user.password_hash.startswith("$argon2id$")
    assert user.role is Role.STAFF
    assert user.is_email_verified is False
    assert user.mfa_enabled is False
    assert user.failed_login_attempts == 0
    assert user.password_changed_at is not None


@pytest.mark.asyncio
async def test_duplicate_email_conflicts(store, user):
    with pytest.raises(ConflictError, match="Email already in use"):
        await store.create_user(
            email="GRACE@example.com",
            raw_password=PASSWORD,
            first_name="Other",
            last_name="Person",
        )


@pytest.mark.asyncio
async def test_lookups(store, user):
    assert (await store.get_by_email("grace@EXAMPLE.com")).id == user.id
    assert (await store.get_by_id(user.id)).email == "grace@example.com"
    assert await store.email_exists(" Grace@example.com") is True


@pytest.mark.asyncio
async def test_verify_password(store, user):
    assert store.verify_password(user, PASSWORD) is True
    assert store.verify_password(user, "Wr0ng!Passw0rd") is False


def test_verify_password_without_user(store):
    assert store.verify_password(None, PASSWORD) is False


@pytest.mark.asyncio
async def test_lockout_after_max_attempts(store, user, settings):
    for expected in range(1, settings.max_failed_login_attempts + 1):
        assert await store.record_failed_attempt(user) == expected

    remaining = store.lockout_remaining(user)
    assert remaining == settings.lockout_minutes


@pytest.mark.asyncio
async def test_lockout_remaining_rounds_up(store, user):
    now = datetime.now(timezone.utc)
    user.lockout_until = now + timedelta(seconds=61)
    assert store.lockout_remaining(user, now) == 2

    user.lockout_until = now + timedelta(seconds=5)
    assert store.lockout_remaining(user, now) == 1


@pytest.mark.asyncio
async def test_expired_lock_is_not_active(store, user):
    now = datetime.now(timezone.utc)
    user.lockout_until = now - timedelta(seconds=1)
    assert store.lockout_remaining(user, now) is None


@pytest.mark.asyncio
async def test_naive_lockout_is_treated_as_utc(store, user):
    now = datetime.now(timezone.utc)
    user.lockout_until = (now + timedelta(minutes=3)).replace(tzinfo=None)
    assert store.lockout_remaining(user, now) == 3


@pytest.mark.asyncio
async def test_set_password_clears_lockout(store, user, db_session):
    for _ in range(5):
        await store.record_failed_attempt(user)
    before = user.password_changed_at

    await store.set_password(user, "N3w!Passw0rd-X")
    await db_session.commit()

    assert store.verify_password(user, "N3w!Passw0rd-X")
    assert not store.verify_password(user, PASSWORD)
    assert user.failed_login_attempts == 0
    assert user.lockout_until is None
    assert user.password_changed_at >= before


@pytest.mark.asyncio
async def test_mfa_secret_lifecycle(store, user, db_session):
    await store.store_mfa_secret(user, "JBSWY3DPEHPK3PXP")
    assert user.mfa_secret == "JBSWY3DPEHPK3PXP"
    assert user.mfa_enabled is False

    await store.enable_mfa(user)
    assert user.mfa_enabled is True

    await store.disable_mfa(user)
    await db_session.commit()
    assert user.mfa_enabled is False
    assert user.mfa_secret is None


@pytest.mark.asyncio
async def test_mark_email_verified_and_logged_in(store, user, db_session):
    await store.mark_email_verified(user)
    await store.mark_logged_in(user)
    await db_session.commit()

    assert user.is_email_verified is True
    assert user.last_login_at is not None


@pytest.mark.asyncio
async def test_upgrade_hash_if_needed(store, user, monkeypatch):
    from clientportal.domain.services import credential_store

    assert await store.upgrade_hash_if_needed(user, PASSWORD) is False

    monkeypatch.setattr(credential_store, "needs_rehash", lambda hashed: True)
    old_hash = user.password_hash
    assert await store.upgrade_hash_if_needed(user, PASSWORD) is True
    assert user.password_hash != old_hash
    assert store.verify_password(user, PASSWORD)
