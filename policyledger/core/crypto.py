"""
policyledger/core/crypto.py

Journal signing keys.

A journal is signed by one writer key. The key lives at journal.key_path
when one is configured; a missing file is created on first use and reused
on every later start, so a resumed journal keeps a single signer.
Problems with that file are configuration problems and raise
ConfigurationError.
"""

import base64
from pathlib import Path

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
)

from policyledger.core.exceptions import ConfigurationError


class Ed25519KeyManager:
    """
    Ed25519 writer key for journal entries.

        Ed25519KeyManager.generate()              → new random key
        Ed25519KeyManager.from_file(path)         → load PEM private key
        Ed25519KeyManager.load_or_generate(path)  → load, or create and save

        key.public_key_hex  → 64-char lowercase hex, stored in every entry
        key.fingerprint     → first 16 hex chars, for logs
        key.sign(data)      → base64url str, no padding
    """

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key = private_key
        self._public_key_hex = (
            private_key.public_key()
            .public_bytes(Encoding.Raw, PublicFormat.Raw)
            .hex()
        )

    @classmethod
    def generate(cls) -> "Ed25519KeyManager":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_file(cls, path: Path) -> "Ed25519KeyManager":
        path = Path(path)
        if not path.exists():
            raise ConfigurationError("Journal key file not found", {"key_path": str(path)})
        try:
            private_key = load_pem_private_key(path.read_bytes(), password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise ConfigurationError(
                f"Journal key file is not a PEM private key: {exc}",
                {"key_path": str(path)},
            ) from exc
        if not isinstance(private_key, Ed25519PrivateKey):
            raise ConfigurationError(
                "Journal key file does not hold an Ed25519 key",
                {"key_path": str(path)},
            )
        return cls(private_key)

    @classmethod
    def load_or_generate(cls, path: Path) -> "Ed25519KeyManager":
        """Load the key at path, or generate one and save it there."""
        path = Path(path)
        if path.exists():
            return cls.from_file(path)
        key = cls.generate()
        key.save(path)
        return key

    @property
    def public_key_hex(self) -> str:
        return self._public_key_hex

    @property
    def fingerprint(self) -> str:
        return self._public_key_hex[:16]

    def sign(self, data: bytes) -> str:
        """Sign data. Returns base64url, no '=' padding."""
        raw_sig = self._private_key.sign(data)
        return base64.urlsafe_b64encode(raw_sig).rstrip(b"=").decode("ascii")

    @staticmethod
    def verify_detached(data: bytes, signature_b64: str, public_key_hex: str) -> bool:
        """
        Check an entry signature against the signer key recorded in the entry.

        False for a malformed key, a malformed signature or a mismatch.
        """
        try:
            pub = Ed25519PublicKey.from_public_bytes(bytes.fromhex(public_key_hex))
            padded  = signature_b64 + "=" * (-len(signature_b64) % 4)
            raw_sig = base64.urlsafe_b64decode(padded)
        except (ValueError, TypeError):
            return False
        if len(raw_sig) != 64:
            return False
        try:
            pub.verify(raw_sig, data)
        except InvalidSignature:
            return False
        return True

    def save(self, path: Path) -> None:
        """Write the private key as unencrypted PKCS8 PEM, creating parent dirs."""
        path = Path(path)
        pem = self._private_key.private_bytes(
            encoding=             Encoding.PEM,
            format=               PrivateFormat.PKCS8,
            encryption_algorithm= NoEncryption(),
        )
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(pem)
        except OSError as exc:
            raise ConfigurationError(
                f"Could not write journal key: {exc}", {"key_path": str(path)}
            ) from exc

    def __repr__(self) -> str:
        return f"Ed25519KeyManager(fingerprint={self.fingerprint})"
