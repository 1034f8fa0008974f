"""
Billplz X-Signature

Billplz signs both the server-to-server callback and the browser redirect.
The source string is built from every parameter except the signature
itself: each key is concatenated with its value, the pieces are sorted
case-insensitively and joined with ``|``. The signature is the hex
HMAC-SHA256 of that string under the collection's X-Signature key.

Redirect parameters arrive nested (``billplz[id]``); their brackets are
dropped before signing, so ``billplz[id]=W_79`` contributes ``billplzidW_79``.
"""

import hashlib
import hmac
from typing import Any, Mapping, Optional

SIGNATURE_FIELDS = frozenset({'x_signature', 'billplzx_signature'})


def _flatten_key(key: str) -> str:
    return key.replace('[', '').replace(']', '')


def _stringify(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def build_source_string(params: Mapping[str, Any]) -> str:
    """Build the string Billplz signs from callback or redirect parameters."""
    pieces = []
    for key, value in params.items():
        flat_key = _flatten_key(key)
        if flat_key in SIGNATURE_FIELDS:
            continue
        pieces.append(f"{flat_key}{_stringify(value)}")
    return '|'.join(sorted(pieces, key=str.lower))


def compute_signature(params: Mapping[str, Any], key: str) -> str:
    return hmac.new(
        key.encode('utf-8'),
        msg=build_source_string(params).encode('utf-8'),
        digestmod=hashlib.sha256
    ).hexdigest()


def extract_signature(params: Mapping[str, Any]) -> Optional[str]:
    """Return the signature carried by the parameters, if any."""
    for key, value in params.items():
        if _flatten_key(key) in SIGNATURE_FIELDS and value:
            return str(value)
    return None


def verify_signature(params: Mapping[str, Any], key: str, signature: Optional[str] = None) -> bool:
    """
    Check a Billplz X-Signature.

    Args:
        params: Callback form fields or redirect query parameters
        key: X-Signature key of the collection
        signature: Signature to check; read from ``params`` when omitted

    Returns:
        True if the signature matches
    """
    signature = signature or extract_signature(params)
    if not key or not signature:
        return False
    return hmac.compare_digest(compute_signature(params, key), signature.lower())
