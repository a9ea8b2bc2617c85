"""
Tests for typed encryption, auto-detection and the multi-value builder.
"""

import pytest

from conftest import CONTRACT, USER
from fhevm_sdk.core.encryption import (
    EncryptedInputBuilder,
    create_input_builder,
    encrypt,
    encrypt_address,
    encrypt_as,
    encrypt_bool,
    encrypt_uint8,
    encrypt_uint16,
    encrypt_uint32,
    encrypt_uint64,
    get_encryption_function,
    infer_fhe_type,
)
from fhevm_sdk.errors import (
    ClientNotInitialized,
    EncryptionFailed,
    UnsupportedOperation,
    ValidationError,
)
from fhevm_sdk.types.fhe import FHE_RANGES, EncryptedInput, FheType, wide


# =============================================================================
# Typed encryption
# =============================================================================

class TestTypedEncryption:

    @pytest.mark.asyncio
    async def test_uint8_accepts_bounds(self, session, fhe_instance):
        await encrypt_uint8(session, 0)
        await encrypt_uint8(session, 255)

        assert fhe_instance.encrypted == [[("uint8", 0)], [("uint8", 255)]]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("encrypt_fn,value,fhe_type", [
        (encrypt_uint8, 256, FheType.UINT8),
        (encrypt_uint8, -1, FheType.UINT8),
        (encrypt_uint16, 65536, FheType.UINT16),
        (encrypt_uint32, 2**32, FheType.UINT32),
        (encrypt_uint64, 2**64, FheType.UINT64),
    ])
    async def test_out_of_range_never_reaches_instance(self, session, fhe_instance, encrypt_fn, value, fhe_type):
        with pytest.raises(ValidationError) as exc_info:
            await encrypt_fn(session, value)

        assert exc_info.value.value == value
        assert exc_info.value.bound == FHE_RANGES[fhe_type]
        assert fhe_instance.builders == []

    @pytest.mark.asyncio
    async def test_validation_error_is_an_encryption_failure(self, session):
        with pytest.raises(EncryptionFailed, match="out of range for uint8"):
            await encrypt_uint8(session, 300)

    @pytest.mark.asyncio
    async def test_uint64_takes_full_range(self, session, fhe_instance):
        await encrypt_uint64(session, 2**64 - 1)

        assert fhe_instance.encrypted == [[("uint64", 2**64 - 1)]]

    @pytest.mark.asyncio
    async def test_integral_float_is_accepted(self, session, fhe_instance):
        await encrypt_uint16(session, 1000.0)

        assert fhe_instance.encrypted == [[("uint16", 1000)]]

    @pytest.mark.asyncio
    async def test_fractional_and_bool_rejected_for_integers(self, session):
        with pytest.raises(ValidationError):
            await encrypt_uint8(session, 1.5)
        with pytest.raises(ValidationError):
            await encrypt_uint8(session, True)

    @pytest.mark.asyncio
    async def test_bool_and_address(self, session, fhe_instance):
        await encrypt_bool(session, True)
        await encrypt_address(session, CONTRACT)

        assert fhe_instance.encrypted == [[("bool", True)], [("address", CONTRACT)]]

    @pytest.mark.asyncio
    async def test_bad_address(self, session, fhe_instance):
        with pytest.raises(ValidationError, match="Invalid Ethereum address"):
            await encrypt_address(session, "0x1234")
        assert fhe_instance.builders == []

    @pytest.mark.asyncio
    async def test_result_is_ciphertext_and_proof(self, session, fhe_instance):
        encrypted = await encrypt_as(session, 7, FheType.UINT32)

        data, proof = encrypted
        assert isinstance(encrypted, EncryptedInput)
        assert data and proof.startswith("0x")

    @pytest.mark.asyncio
    async def test_builder_bound_to_acl_and_account(self, session, fhe_instance):
        await encrypt_uint8(session, 1)

        builder = fhe_instance.builders[0]
        assert builder.contract == session.network.acl_address
        assert builder.user == USER


# =============================================================================
# Auto-detection
# =============================================================================

class TestAutoDetect:

    @pytest.mark.parametrize("value,expected", [
        (True, FheType.BOOL),
        (False, FheType.BOOL),
        (0, FheType.UINT8),
        (250, FheType.UINT8),
        (256, FheType.UINT16),
        (1000, FheType.UINT16),
        (65536, FheType.UINT32),
        (2**32 - 1, FheType.UINT32),
        (wide(5), FheType.UINT64),
        (wide(2**40), FheType.UINT64),
        (CONTRACT, FheType.ADDRESS),
    ])
    def test_infer(self, value, expected):
        assert infer_fhe_type(value) is expected

    @pytest.mark.parametrize("value", [2**32, -1, "hello", 1.5, None, [1]])
    def test_rejects(self, value):
        with pytest.raises(ValidationError):
            infer_fhe_type(value)

    def test_large_int_hint(self):
        with pytest.raises(ValidationError, match="wide"):
            infer_fhe_type(2**40)

    @pytest.mark.asyncio
    async def test_encrypt_dispatches(self, session, fhe_instance):
        await encrypt(session, 1000)
        await encrypt(session, False)

        assert fhe_instance.encrypted == [[("uint16", 1000)], [("bool", False)]]

    def test_get_encryption_function(self):
        assert get_encryption_function("uint16") is encrypt_uint16
        assert get_encryption_function(FheType.ADDRESS) is encrypt_address
        with pytest.raises(UnsupportedOperation):
            get_encryption_function("uint128")


# =============================================================================
# Session and instance failures
# =============================================================================

@pytest.mark.asyncio
async def test_requires_session(session):
    with pytest.raises(ClientNotInitialized):
        await encrypt(None, 1)

    session.instance = None
    with pytest.raises(ClientNotInitialized):
        await encrypt_uint8(session, 1)


@pytest.mark.asyncio
async def test_requires_account_address(session):
    session.address = None

    with pytest.raises(ClientNotInitialized, match="address"):
        await encrypt_bool(session, True)


@pytest.mark.asyncio
async def test_validation_runs_before_session_check():
    with pytest.raises(ValidationError):
        await encrypt_uint8(None, 999)


@pytest.mark.asyncio
async def test_instance_failure_wrapped(session, fhe_instance):
    fhe_instance.fail_with = RuntimeError("wasm trap")

    with pytest.raises(EncryptionFailed, match="wasm trap") as exc_info:
        await encrypt_uint32(session, 5)

    assert isinstance(exc_info.value.__cause__, RuntimeError)


# =============================================================================
# Builder
# =============================================================================

class TestInputBuilder:

    @pytest.mark.asyncio
    async def test_collects_values_under_one_proof(self, session, fhe_instance):
        builder = create_input_builder(session)
        builder.add8(42).add_bool(True).add_address(USER).add(1000)

        assert builder.types == [FheType.UINT8, FheType.BOOL, FheType.ADDRESS, FheType.UINT16]

        await builder.encrypt()

        assert len(fhe_instance.builders) == 1
        assert fhe_instance.encrypted == [
            [("uint8", 42), ("bool", True), ("address", USER), ("uint16", 1000)]
        ]

    def test_add_validates_immediately(self, session):
        builder = EncryptedInputBuilder(session)

        with pytest.raises(ValidationError):
            builder.add16(70000)
        assert len(builder) == 0

    @pytest.mark.asyncio
    async def test_single_use(self, session):
        builder = create_input_builder(session).add64(wide(1))
        await builder.encrypt()

        assert builder.used
        with pytest.raises(EncryptionFailed, match="already been used"):
            await builder.encrypt()
        with pytest.raises(EncryptionFailed):
            builder.add8(1)

    @pytest.mark.asyncio
    async def test_empty(self, session, fhe_instance):
        with pytest.raises(EncryptionFailed, match="empty"):
            await create_input_builder(session).encrypt()
        assert fhe_instance.builders == []

    def test_requires_ready_session(self):
        with pytest.raises(ClientNotInitialized):
            create_input_builder(None)
