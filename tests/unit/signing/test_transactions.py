import pytest
from eth_keys import keys

from stacker.signing.clarity import UIntCV
from stacker.signing.hashes import hash160, sha512_256
from stacker.signing.transactions import (
    EMPTY_SIGNATURE,
    KEY_ENCODING_UNCOMPRESSED,
    ContractCallPayload,
    SingleSigSpendingCondition,
    make_contract_call,
)
from stacker.signing.keys import build_account

BOOT_ADDRESS = "ST000000000000000000002AMW42H"

# version, chain id, auth type, hash mode, signer, nonce, fee, key encoding, signature
SPENDING_CONDITION_END = 1 + 4 + 1 + 1 + 20 + 8 + 8 + 1 + 65


def _tx(account, nonce=3, fee=1000, args=None):
    return make_contract_call(
        contract_address=BOOT_ADDRESS,
        contract_name="pox-4",
        function_name="stack-stx",
        function_args=args if args is not None else [UIntCV(5)],
        private_key=account.secret_key,
        nonce=nonce,
        fee=fee,
        compressed=account.compressed,
    )


class TestLayout:
    def test_header(self, account):
        raw = _tx(account).serialize()
        assert raw[0] == 0x80
        assert raw[1:5] == bytes.fromhex("80000000")
        assert raw[5] == 0x04

    def test_spending_condition(self, account):
        raw = _tx(account, nonce=3, fee=1000).serialize()
        assert raw[6] == 0x00
        assert raw[7:27] == hash160(account.public_key)
        assert int.from_bytes(raw[27:35], "big") == 3
        assert int.from_bytes(raw[35:43], "big") == 1000
        assert raw[43] == 0x00
        assert raw[44:109] != EMPTY_SIGNATURE

    def test_anchor_and_post_conditions(self, account):
        raw = _tx(account).serialize()
        end = SPENDING_CONDITION_END
        assert raw[end] == 0x03
        assert raw[end + 1] == 0x02
        assert raw[end + 2 : end + 6] == bytes(4)

    def test_payload(self, account):
        raw = _tx(account).serialize()
        payload = raw[SPENDING_CONDITION_END + 6 :]
        assert payload == (
            bytes([0x02, 26])
            + bytes(20)
            + b"\x05pox-4"
            + b"\x09stack-stx"
            + bytes.fromhex("00000001")
            + UIntCV(5).serialize()
        )

    def test_txid_hashes_serialized_tx(self, account):
        tx = _tx(account)
        assert tx.txid() == sha512_256(tx.serialize()).hex()


class TestSigning:
    def test_signature_recovers_sender(self, account):
        tx = _tx(account)
        signature = tx.spending_condition.signature
        recovery_id = signature[0]
        r = int.from_bytes(signature[1:33], "big")
        s = int.from_bytes(signature[33:65], "big")

        recovered = keys.Signature(vrs=(recovery_id, r, s)).recover_public_key_from_msg_hash(
            tx.presign_sighash()
        )
        assert recovered.to_compressed_bytes() == account.public_key

    def test_initial_sighash_ignores_fee_and_nonce(self, account):
        assert _tx(account, nonce=1, fee=1000).initial_sighash() == _tx(
            account, nonce=2, fee=1001
        ).initial_sighash()

    def test_presign_sighash_binds_fee_and_nonce(self, account):
        base = _tx(account, nonce=1, fee=1000).presign_sighash()
        assert base != _tx(account, nonce=1, fee=1001).presign_sighash()
        assert base != _tx(account, nonce=2, fee=1000).presign_sighash()

    def test_uncompressed_key_encoding(self):
        account = build_account(0, "01" * 32)
        raw = _tx(account).serialize()
        assert raw[7:27] == hash160(account.public_key)
        assert raw[43] == KEY_ENCODING_UNCOMPRESSED


class TestValidation:
    def test_rejects_long_function_name(self):
        payload = ContractCallPayload(BOOT_ADDRESS, "pox-4", "x" * 129)
        with pytest.raises(ValueError):
            payload.serialize()

    def test_rejects_bad_signer_hash(self):
        with pytest.raises(ValueError):
            SingleSigSpendingCondition(signer=b"\x00", nonce=0, fee=0).serialize()
