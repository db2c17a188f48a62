"""
Notification Signature Verification.

PayU signs every notification body with the store's second key and sends
the result in the OpenPayu-Signature header, e.g.:

    sender=checkout;signature=9f86d0...;algorithm=SHA-256;content=DOCUMENT

The digest is always computed over the raw request bytes.
"""

import binascii
import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

logger = logging.getLogger(__name__)


DEFAULT_ALGORITHM = "SHA-256"

# Header algorithm names (normalized) to hashlib constructors
SUPPORTED_ALGORITHMS = {
    'SHA256': hashlib.sha256,
    'SHA384': hashlib.sha384,
    'SHA512': hashlib.sha512,
}


@dataclass(frozen=True)
class SignatureHeader:
    """Parsed OpenPayu-Signature header."""

    signature: str
    algorithm: str = DEFAULT_ALGORITHM
    sender: Optional[str] = None


def _normalize_algorithm(algorithm: str) -> str:
    return algorithm.strip().upper().replace('-', '').replace('_', '')


def parse_signature_header(header_value: Optional[str]) -> Optional[SignatureHeader]:
    """
    Parse a signature header value.

    Accepts the PayU key=value form and a bare hex digest.

    Args:
        header_value: Raw header value (may be None)

    Returns:
        SignatureHeader, or None if no signature is present
    """
    if not header_value or not header_value.strip():
        return None

    value = header_value.strip()
    if '=' not in value:
        return SignatureHeader(signature=value)

    parts = {}
    for part in value.split(';'):
        key, sep, item = part.partition('=')
        if sep:
            parts[key.strip().lower()] = item.strip()

    signature = parts.get('signature')
    if not signature:
        return None

    return SignatureHeader(
        signature=signature,
        algorithm=parts.get('algorithm') or DEFAULT_ALGORITHM,
        sender=parts.get('sender')
    )


def compute_signature(body: bytes, secret: bytes, algorithm: str = DEFAULT_ALGORITHM) -> bytes:
    """
    Compute the keyed digest of a body.

    Args:
        body: Raw notification bytes
        secret: Second key
        algorithm: Digest name as sent in the header

    Returns:
        Raw digest bytes

    Raises:
        ValueError: If the algorithm is not supported
    """
    digestmod = SUPPORTED_ALGORITHMS.get(_normalize_algorithm(algorithm))
    if digestmod is None:
        raise ValueError(f"Unsupported signature algorithm: {algorithm}")
    return hmac.new(secret, body, digestmod).digest()


def sign(body: bytes, secret: bytes, algorithm: str = DEFAULT_ALGORITHM,
         sender: str = "checkout") -> str:
    """
    Build an OpenPayu-Signature header value for a body.

    Args:
        body: Raw notification bytes
        secret: Second key
        algorithm: Digest name
        sender: Sender field for the header

    Returns:
        Header value in PayU's key=value format
    """
    signature = compute_signature(body, secret, algorithm).hex()
    return f"sender={sender};signature={signature};algorithm={algorithm};content=DOCUMENT"


def verify(
    body: bytes,
    provided_signature: Optional[str],
    secret: bytes,
    algorithm: str = DEFAULT_ALGORITHM
) -> bool:
    """
    Verify a hex signature against a body.

    The provided value is decoded to bytes and compared in constant time.
    Never raises: anything unverifiable returns False.

    Args:
        body: Raw notification bytes
        provided_signature: Hex digest from the header
        secret: Second key
        algorithm: Digest name

    Returns:
        True if the signature is valid
    """
    if not provided_signature or not secret:
        return False

    try:
        provided = binascii.unhexlify(provided_signature.strip())
    except (binascii.Error, ValueError):
        return False

    try:
        expected = compute_signature(body, secret, algorithm)
    except ValueError as e:
        logger.warning(f"Rejecting signature: {e}")
        return False

    return hmac.compare_digest(expected, provided)


def verify_any(
    body: bytes,
    header_value: Optional[str],
    secrets: Sequence[bytes]
) -> Optional[int]:
    """
    Verify a signature header against several keys (key rotation).

    Args:
        body: Raw notification bytes
        header_value: Raw OpenPayu-Signature header value
        secrets: Candidate keys, current key first

    Returns:
        Index of the first matching key, or None
    """
    header = parse_signature_header(header_value)
    if header is None:
        return None

    for index, secret in enumerate(secrets):
        if verify(body, header.signature, secret, header.algorithm):
            return index

    return None
