"""App-identity hash embedded in verification messages.

The SMS delivery source only hands over messages that carry this 11
character token. It is derived from the package name and the signing
certificate; code extraction never looks at it.
"""

from __future__ import annotations

import base64
import hashlib


HASH_TYPE = "sha256"
NUM_HASHED_BYTES = 9
NUM_BASE64_CHAR = 11


def generate_app_hash(package_name: str, signature: str) -> str:
    if not package_name or not signature:
        raise ValueError("package_name and signature are required to derive the app hash")
    digest = hashlib.new(HASH_TYPE, f"{package_name} {signature}".encode("utf-8")).digest()
    encoded = base64.b64encode(digest[:NUM_HASHED_BYTES]).decode("ascii")
    return encoded[:NUM_BASE64_CHAR]


def format_sms(code: str, app_hash: str) -> str:
    """Build a test message in the layout senders are asked to use."""
    return f"Your OTP is {code} {app_hash}"
