"""Property-based tests for the key extractor and envelope parser using Hypothesis.

Arbitrary input must either succeed or raise InvalidTokenError, never
anything else.
"""

import base64

from hypothesis import given, settings, strategies as st

from applepay_decoder.core.errors import InvalidTokenError
from applepay_decoder.core.formats import (
    decode_transaction_id,
    extract_components,
    parse_payment_data,
    validate_structure,
)
from applepay_decoder.core.keys import RAW_POINT_SIZE, extract_raw_key

raw_points = st.binary(min_size=64, max_size=64).map(lambda b: b"\x04" + b)
prefix_without_marker = st.binary(max_size=64).map(lambda b: b.replace(b"\x04", b"\x00"))


class TestExtractRawKeyProperties:
    @given(raw=raw_points)
    @settings(max_examples=200)
    def test_raw_points_unchanged(self, raw: bytes):
        assert extract_raw_key(raw) == raw

    @given(prefix=prefix_without_marker, raw=raw_points)
    @settings(max_examples=200)
    def test_prefixed_point_recovered(self, prefix: bytes, raw: bytes):
        assert extract_raw_key(prefix + raw) == raw

    @given(data=st.binary(max_size=RAW_POINT_SIZE - 1))
    @settings(max_examples=200)
    def test_short_input_always_rejected(self, data: bytes):
        try:
            extract_raw_key(data)
            assert False, "Should have raised InvalidTokenError for short key"
        except InvalidTokenError:
            pass

    @given(data=st.binary(max_size=512))
    @settings(max_examples=500)
    def test_arbitrary_bytes_never_crash(self, data: bytes):
        try:
            result = extract_raw_key(data)
        except InvalidTokenError:
            return
        assert len(result) == RAW_POINT_SIZE
        assert result[0] == 0x04
        assert result in data


class TestEnvelopeProperties:
    @given(
        key=st.binary(max_size=128),
        data=st.binary(max_size=256),
        txn=st.text(alphabet="0123456789abcdefABCDEF", max_size=64),
    )
    @settings(max_examples=200)
    def test_valid_encodings_decode(self, key: bytes, data: bytes, txn: str):
        token = {
            "version": "EC_v1",
            "data": base64.b64encode(data).decode(),
            "signature": "",
            "header": {
                "publicKeyHash": "",
                "ephemeralPublicKey": base64.b64encode(key).decode(),
                "transactionId": txn,
            },
        }
        validate_structure(token)
        components = extract_components(token)
        assert components.ephemeral_public_key == key
        assert components.encrypted_data == data
        assert int.from_bytes(components.transaction_id, "big") == int(txn or "0", 16)

    @given(value=st.text(max_size=64))
    @settings(max_examples=300)
    def test_arbitrary_transaction_id_never_crashes(self, value: str):
        try:
            decode_transaction_id(value)
        except InvalidTokenError:
            pass

    @given(
        token=st.dictionaries(
            st.sampled_from(["version", "data", "signature", "header", "extra"]),
            st.one_of(st.none(), st.text(max_size=16), st.integers(),
                      st.dictionaries(st.text(max_size=20), st.text(max_size=16), max_size=4)),
            max_size=5,
        )
    )
    @settings(max_examples=300)
    def test_arbitrary_envelopes_never_crash(self, token):
        try:
            validate_structure(token)
            extract_components(token)
        except InvalidTokenError:
            pass

    @given(data=st.binary(max_size=256))
    @settings(max_examples=300)
    def test_arbitrary_plaintext_never_crashes(self, data: bytes):
        try:
            result = parse_payment_data(data)
        except InvalidTokenError:
            return
        assert isinstance(result, dict)
