"""eyaml (PKCS#7) protected values.

Values are envelope-encrypted with a level's public certificate and stored
as ``ENC[PKCS7,<base64 DER>]``. Existing protected values are surfaced as
``EncryptedValue`` and never decrypted.
"""
from __future__ import annotations

import base64
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs7

from hieraedit.core.exceptions import HierarchyError

ENCRYPTED_VALUE = re.compile(r"^ENC\[(?P<scheme>[A-Za-z0-9_]+),(?P<payload>[^\]]*)\]$", re.DOTALL)

PUBLIC_KEY_OPTION = "pkcs7_public_key"
PRIVATE_KEY_OPTION = "pkcs7_private_key"


@dataclass(frozen=True)
class EncryptedValue:
    """Raw ``ENC[...]`` text read from a data file."""

    raw: str

    @property
    def encrypted(self) -> bool:
        return True

    @property
    def scheme(self) -> str:
        match = ENCRYPTED_VALUE.match(self.raw.strip())
        return match.group("scheme") if match else ""

    def dump(self) -> dict[str, Any]:
        return {"encrypted": True, "raw": self.raw}

    def __str__(self) -> str:
        return self.raw


@dataclass(frozen=True)
class EncryptionSettings:
    """pkcs7 key material of a hierarchy level (paths as configured)."""

    public_key: str | None = None
    private_key: str | None = None

    @classmethod
    def from_options(cls, options: Mapping[str, Any] | None) -> EncryptionSettings | None:
        if not options:
            return None
        public_key = options.get(PUBLIC_KEY_OPTION)
        private_key = options.get(PRIVATE_KEY_OPTION)
        if public_key is None and private_key is None:
            return None
        return cls(
            public_key=str(public_key) if public_key is not None else None,
            private_key=str(private_key) if private_key is not None else None,
        )

    def public_key_path(self, base_dir: Path) -> Path:
        if not self.public_key:
            raise HierarchyError("Encryption settings carry no pkcs7_public_key")
        path = Path(self.public_key)
        return path if path.is_absolute() else Path(base_dir) / path

    def dump(self) -> dict[str, Any]:
        return {PUBLIC_KEY_OPTION: self.public_key, PRIVATE_KEY_OPTION: self.private_key}


def is_encrypted_text(value: Any) -> bool:
    return isinstance(value, str) and ENCRYPTED_VALUE.match(value.strip()) is not None


def wrap_encrypted(data: Any) -> Any:
    """Replace ``ENC[...]`` strings (recursively) by ``EncryptedValue``."""
    if is_encrypted_text(data):
        return EncryptedValue(data)
    if isinstance(data, dict):
        return {k: wrap_encrypted(v) for k, v in data.items()}
    if isinstance(data, list):
        return [wrap_encrypted(v) for v in data]
    return data


def unwrap_encrypted(data: Any) -> Any:
    """Inverse of ``wrap_encrypted`` for serialization."""
    if isinstance(data, EncryptedValue):
        return data.raw
    if isinstance(data, dict):
        return {k: unwrap_encrypted(v) for k, v in data.items()}
    if isinstance(data, list):
        return [unwrap_encrypted(v) for v in data]
    return data


def load_certificate(path: Path) -> x509.Certificate:
    """Load a PEM (or DER) X.509 certificate used as the eyaml public key."""
    try:
        content = Path(path).read_bytes()
    except OSError as exc:
        raise HierarchyError(f"Cannot read public key {path}: {exc}") from exc
    try:
        if b"-----BEGIN" in content:
            return x509.load_pem_x509_certificate(content)
        return x509.load_der_x509_certificate(content)
    except ValueError as exc:
        raise HierarchyError(f"Invalid public key certificate {path}: {exc}") from exc


def encrypt_value(plaintext: str, certificate: x509.Certificate) -> EncryptedValue:
    """Envelope-encrypt ``plaintext`` for ``certificate``."""
    envelope = (
        pkcs7.PKCS7EnvelopeBuilder()
        .set_data(plaintext.encode("utf-8"))
        .add_recipient(certificate)
        .encrypt(serialization.Encoding.DER, [])
    )
    return EncryptedValue("ENC[PKCS7," + base64.b64encode(envelope).decode("ascii") + "]")


__all__ = [
    "EncryptedValue",
    "EncryptionSettings",
    "encrypt_value",
    "is_encrypted_text",
    "load_certificate",
    "unwrap_encrypted",
    "wrap_encrypted",
]
