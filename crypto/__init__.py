"""
Fungible Token Governance - Keys and Signers
"""

from .exceptions import CryptoError, InvalidKeyError, InvalidSignatureError, SigningError
from .keys import ADDRESS_PREFIX, PrivateKey, PublicKey, address_from_public_key
from .signer import LocalSigner, Signer, as_signed, verify_signature

__all__ = [
    "CryptoError",
    "InvalidKeyError",
    "InvalidSignatureError",
    "SigningError",
    "ADDRESS_PREFIX",
    "PrivateKey",
    "PublicKey",
    "address_from_public_key",
    "LocalSigner",
    "Signer",
    "as_signed",
    "verify_signature",
]
