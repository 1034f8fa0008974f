"""Tests for Billplz X-Signature source strings and verification."""

import hashlib
import hmac

from backend.src.billing.external.billplz import (
    build_source_string,
    compute_signature,
    extract_signature,
    verify_signature,
)

KEY = 'S-s7fZo2hJ6nLX1Tyy9oH7Qg'


def sign(source: str, key: str = KEY) -> str:
    return hmac.new(key.encode(), source.encode(), hashlib.sha256).hexdigest()


class TestSourceString:
    """Tests for build_source_string."""

    def test_sorted_key_value_pairs_joined_with_pipe(self):
        params = {'paid': 'true', 'id': 'W_79pJDk', 'amount': '200'}

        assert build_source_string(params) == 'amount200|idW_79pJDk|paidtrue'

    def test_signature_field_is_excluded(self):
        params = {'id': 'W_79pJDk', 'x_signature': 'abc'}

        assert build_source_string(params) == 'idW_79pJDk'

    def test_redirect_brackets_are_flattened(self):
        params = {
            'billplz[id]': 'W_79pJDk',
            'billplz[paid]': 'true',
            'billplz[paid_at]': '2026-03-01 12:00:00 +0800',
            'billplz[x_signature]': 'abc',
        }

        assert build_source_string(params) == (
            'billplzidW_79pJDk|billplzpaid_at2026-03-01 12:00:00 +0800|billplzpaidtrue'
        )

    def test_sort_is_case_insensitive(self):
        params = {'b': '1', 'A': '2', 'c': '3'}

        assert build_source_string(params) == 'A2|b1|c3'

    def test_booleans_and_none(self):
        assert build_source_string({'paid': True, 'due_at': None}) == 'due_at|paidtrue'


class TestVerification:
    """Tests for compute_signature / verify_signature."""

    def test_compute_matches_hmac_sha256(self):
        params = {'id': 'W_79pJDk', 'paid': 'true', 'amount': '200'}

        assert compute_signature(params, KEY) == sign('amount200|idW_79pJDk|paidtrue')

    def test_valid_signature_in_params(self):
        params = {'id': 'W_79pJDk', 'paid': 'true', 'amount': '200'}
        params['x_signature'] = compute_signature(params, KEY)

        assert verify_signature(params, KEY) is True

    def test_uppercase_hex_is_accepted(self):
        params = {'id': 'W_79pJDk', 'paid': 'true'}
        signature = compute_signature(params, KEY).upper()

        assert verify_signature(params, KEY, signature) is True

    def test_tampered_value_is_rejected(self):
        params = {'id': 'W_79pJDk', 'paid': 'false', 'amount': '200'}
        params['x_signature'] = compute_signature(params, KEY)
        params['paid'] = 'true'

        assert verify_signature(params, KEY) is False

    def test_wrong_key_is_rejected(self):
        params = {'id': 'W_79pJDk', 'paid': 'true'}
        params['x_signature'] = compute_signature(params, 'other-key')

        assert verify_signature(params, KEY) is False

    def test_missing_signature_or_key(self):
        params = {'id': 'W_79pJDk', 'paid': 'true'}

        assert verify_signature(params, KEY) is False
        assert verify_signature({**params, 'x_signature': 'abc'}, '') is False

    def test_extract_from_redirect(self):
        assert extract_signature({'billplz[id]': 'x', 'billplz[x_signature]': 'abc'}) == 'abc'
        assert extract_signature({'billplz[id]': 'x'}) is None
