"""
Tests for the permit lifecycle: request, cache, validation, revocation.
"""

from datetime import datetime, timedelta, timezone

import pytest

from conftest import CONTRACT, PUBLIC_KEY, USER, FakeSigner
from fhevm_sdk.cache import PermitCache
from fhevm_sdk.config import settings
from fhevm_sdk.core.permits import (
    PERMIT_TYPES,
    PermitAuthority,
    build_permit_payload,
    is_permit_valid,
    request_permit,
    revoke_permit,
)
from fhevm_sdk.errors import ClientNotInitialized, InvalidConfig, NetworkError, UserRejected
from fhevm_sdk.security import JsonFileBackend, SecureStorage
from fhevm_sdk.types.fhe import DecryptionPermit, PermitState


OTHER_USER = "0x3333333333333333333333333333333333333333"


def live_permit(**overrides) -> DecryptionPermit:
    data = {
        "signature": "0x" + "ee" * 65,
        "public_key": PUBLIC_KEY,
        "expires_at": datetime.now(timezone.utc) + timedelta(hours=1),
    }
    data.update(overrides)
    return DecryptionPermit(**data)


def expired_permit() -> DecryptionPermit:
    return live_permit(expires_at=datetime.now(timezone.utc) - timedelta(seconds=1))


@pytest.fixture
def authority(session) -> PermitAuthority:
    return PermitAuthority(session)


# =============================================================================
# Payload
# =============================================================================

def test_payload_binds_chain_contract_account_and_key(session):
    payload = build_permit_payload(session, CONTRACT, USER)

    assert payload["domain"] == {
        "name": "Authorization token",
        "version": "1",
        "chainId": 31337,
        "verifyingContract": CONTRACT,
    }
    assert payload["types"] == PERMIT_TYPES
    assert payload["message"] == {"account": USER, "publicKey": PUBLIC_KEY}


# =============================================================================
# Request
# =============================================================================

class TestRequestPermit:

    @pytest.mark.asyncio
    async def test_grants_and_caches(self, authority, signer):
        permit = await authority.request_permit(CONTRACT)

        assert permit.signature.startswith("0x")
        assert permit.public_key == PUBLIC_KEY
        assert permit.contract == CONTRACT.lower()
        assert permit.user == USER.lower()
        assert not permit.is_expired()
        assert len(signer.requests) == 1
        assert authority.get_state(CONTRACT, USER) is PermitState.GRANTED
        assert authority.get_cached_permit(CONTRACT) == permit

    @pytest.mark.asyncio
    async def test_ttl(self, authority):
        before = datetime.now(timezone.utc)

        permit = await authority.request_permit(CONTRACT, ttl_seconds=60)

        assert before + timedelta(seconds=59) < permit.expires_at
        assert permit.expires_at <= datetime.now(timezone.utc) + timedelta(seconds=60)

    @pytest.mark.asyncio
    async def test_cached_permit_reused(self, authority, signer):
        first = await authority.get_or_request_permit(CONTRACT)
        second = await authority.get_or_request_permit(CONTRACT)

        assert first == second
        assert len(signer.requests) == 1

    @pytest.mark.asyncio
    async def test_not_shared_across_accounts(self, authority, signer):
        await authority.request_permit(CONTRACT)

        assert authority.get_cached_permit(CONTRACT, OTHER_USER) is None
        assert authority.get_state(CONTRACT, OTHER_USER) is PermitState.UNREQUESTED

    @pytest.mark.asyncio
    async def test_rejection_leaves_no_trace(self, session):
        session.signer = FakeSigner(reject=True)
        authority = PermitAuthority(session)

        with pytest.raises(UserRejected):
            await authority.request_permit(CONTRACT)

        assert authority.get_cached_permit(CONTRACT) is None
        assert authority.cache.size() == 0
        assert authority.get_state(CONTRACT, USER) is PermitState.UNREQUESTED

    @pytest.mark.asyncio
    async def test_rejection_clears_earlier_grant(self, session):
        authority = PermitAuthority(session)
        await authority.request_permit(CONTRACT)
        session.signer.reject = True

        with pytest.raises(UserRejected):
            await authority.request_permit(CONTRACT)

        assert authority.get_cached_permit(CONTRACT) is None

    @pytest.mark.asyncio
    async def test_signer_failure_is_network_error(self, session):
        session.signer = FakeSigner(fail_with=RuntimeError("socket closed"))
        authority = PermitAuthority(session)

        with pytest.raises(NetworkError, match="socket closed"):
            await authority.request_permit(CONTRACT)
        assert authority.get_state(CONTRACT, USER) is PermitState.UNREQUESTED

    @pytest.mark.asyncio
    async def test_validates_inputs(self, authority, signer):
        with pytest.raises(InvalidConfig, match="contract address"):
            await authority.request_permit("0xnope")
        with pytest.raises(InvalidConfig):
            await authority.request_permit(CONTRACT, handles=[1, -2])
        with pytest.raises(InvalidConfig, match="positive"):
            await authority.request_permit(CONTRACT, ttl_seconds=0)
        assert signer.requests == []

    @pytest.mark.asyncio
    async def test_requires_signer(self, session):
        session.signer = None

        with pytest.raises(ClientNotInitialized, match="signer"):
            await request_permit(session, CONTRACT)

    @pytest.mark.asyncio
    async def test_expired_cache_entry_marks_state(self, authority):
        await authority.request_permit(CONTRACT)
        authority.cache.set(CONTRACT, USER, expired_permit())

        assert authority.get_cached_permit(CONTRACT) is None
        assert authority.get_state(CONTRACT, USER) is PermitState.EXPIRED


# =============================================================================
# Validation
# =============================================================================

class TestPermitValidation:

    @pytest.mark.asyncio
    async def test_expired_permit_checked_locally(self, session, gateway_stub):
        assert await is_permit_valid(session, expired_permit()) is False
        assert gateway_stub.calls_to("/permit/validate") == 0

    @pytest.mark.asyncio
    async def test_malformed_permit_checked_locally(self, session, gateway_stub):
        assert await is_permit_valid(session, live_permit(signature="")) is False
        assert await is_permit_valid(session, None) is False
        assert gateway_stub.calls == []

    @pytest.mark.asyncio
    async def test_gateway_verdict(self, session, gateway_stub):
        assert await is_permit_valid(session, live_permit()) is True

        gateway_stub.valid = False
        assert await is_permit_valid(session, live_permit()) is False

        gateway_stub.validate_status = 403
        assert await is_permit_valid(session, live_permit()) is False

        method, path, body = gateway_stub.calls[0]
        assert (method, path) == ("POST", "/permit/validate")
        assert body == {"signature": "0x" + "ee" * 65, "publicKey": PUBLIC_KEY}

    @pytest.mark.asyncio
    async def test_gateway_failure_propagates(self, session, gateway_stub):
        gateway_stub.validate_status = 503

        with pytest.raises(NetworkError):
            await is_permit_valid(session, live_permit())


# =============================================================================
# Revocation
# =============================================================================

class TestPermitRevocation:

    @pytest.mark.asyncio
    async def test_revokes_and_forgets(self, authority, gateway_stub):
        permit = await authority.request_permit(CONTRACT)

        assert await authority.revoke_permit(permit) is True

        assert authority.get_cached_permit(CONTRACT) is None
        assert authority.get_state(CONTRACT, USER) is PermitState.REVOKED
        assert gateway_stub.calls_to("/permit/revoke") == 1

    @pytest.mark.asyncio
    async def test_idempotent(self, authority, gateway_stub):
        permit = await authority.request_permit(CONTRACT)
        await authority.revoke_permit(permit)
        gateway_stub.revoke_status = 404

        assert await authority.revoke_permit(permit) is False

    @pytest.mark.asyncio
    async def test_expired_permit_skips_gateway(self, session, gateway_stub):
        assert await revoke_permit(session, expired_permit()) is False
        assert gateway_stub.calls == []

    @pytest.mark.asyncio
    async def test_gateway_failure_propagates(self, session, gateway_stub):
        gateway_stub.revoke_status = 500

        with pytest.raises(NetworkError):
            await revoke_permit(session, live_permit())


# =============================================================================
# Persistence
# =============================================================================

@pytest.mark.asyncio
async def test_permits_survive_restart_through_storage(session):
    storage = SecureStorage(prefix="test_")
    authority = PermitAuthority(session, cache=PermitCache(storage=storage))
    permit = await authority.request_permit(CONTRACT)

    restored = PermitAuthority(session, cache=PermitCache(storage=storage))

    assert restored.get_cached_permit(CONTRACT) == permit
    assert restored.get_state(CONTRACT, USER) is PermitState.GRANTED


def test_expired_stored_permits_dropped_on_load():
    storage = SecureStorage(prefix="test_")
    PermitCache(storage=storage).set(CONTRACT, USER, expired_permit())

    cache = PermitCache(storage=storage)

    assert cache.size() == 0
    assert storage.keys() == []


def test_cache_evicts_least_recently_used():
    cache = PermitCache(max_size=2)
    cache.set(CONTRACT, USER, live_permit(signature="0x01"))
    cache.set(CONTRACT, OTHER_USER, live_permit(signature="0x02"))
    cache.get(CONTRACT, USER)
    cache.set(OTHER_USER, USER, live_permit(signature="0x03"))

    assert cache.get(CONTRACT, USER) is not None
    assert cache.get(CONTRACT, OTHER_USER) is None


@pytest.mark.asyncio
async def test_configured_store_path_shared_by_function_api(session, monkeypatch, tmp_path):
    monkeypatch.setattr(settings, "permit_store_path", str(tmp_path / "permits.json"))

    permit = await request_permit(session, CONTRACT)

    assert PermitAuthority(session).get_cached_permit(CONTRACT) == permit
    assert (tmp_path / "permits.json").exists()


@pytest.mark.asyncio
async def test_authorities_sharing_a_store_keep_each_others_permits(session, monkeypatch, tmp_path):
    path = tmp_path / "permits.json"
    monkeypatch.setattr(settings, "permit_store_path", str(path))
    long_lived = PermitAuthority(session)

    other = await request_permit(session, OTHER_USER)
    mine = await long_lived.request_permit(CONTRACT)

    fresh = PermitAuthority(session)
    assert fresh.get_cached_permit(OTHER_USER) == other
    assert fresh.get_cached_permit(CONTRACT) == mine

    on_disk = PermitCache(storage=SecureStorage(backend=JsonFileBackend(path)))
    assert on_disk.size() == 2


@pytest.mark.asyncio
async def test_revocation_through_one_authority_seen_by_another(session, monkeypatch, tmp_path):
    path = tmp_path / "permits.json"
    monkeypatch.setattr(settings, "permit_store_path", str(path))
    first = PermitAuthority(session)
    second = PermitAuthority(session)
    permit = await first.request_permit(CONTRACT)
    await second.request_permit(OTHER_USER)

    await revoke_permit(session, permit)
    await second.request_permit(OTHER_USER, ttl_seconds=120)

    assert first.get_cached_permit(CONTRACT) is None
    on_disk = PermitCache(storage=SecureStorage(backend=JsonFileBackend(path)))
    assert on_disk.get(CONTRACT, USER) is None
    assert on_disk.get(OTHER_USER, USER) is not None
