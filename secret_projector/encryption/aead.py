"""Passphrase based authenticated encryption (AES-GCM).

The cipher key is derived by hashing a passphrase and fitting the hex digest
to the cipher's key length:

    passphrase -> hex(hash(passphrase)) -> trailing N bytes (or zero left-padded) -> AES-GCM key

Every ciphertext is prefixed with its own random nonce.
"""
import hashlib
import json
import os
from typing import BinaryIO, Dict, List

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..projection.domains.errors import (
    DecryptionError,
    EncryptionConfigError,
    UnsupportedCipherError,
    UnsupportedHashError,
)
from ..projection.domains.models import EncryptionConfig
from .interface import EncryptionModule, Key

NONCE_SIZE = 12  # 96 bits, standard for AES-GCM

CIPHER_KEY_LENGTHS = {
    "aes": 32,
}

# Digest used when the params omit one, per cipher
DEFAULT_HASHES = {
    "aes": "md5",
}

HASHES = {
    "md5": hashlib.md5,
    "sha1": hashlib.sha1,
    "sha256": hashlib.sha256,
    "sha512": hashlib.sha512,
}


def pad_or_trim(data: bytes, cipher_name: str) -> bytes:
    """Fit data to the key length of cipher_name: keep the trailing bytes, or left-pad with zeros."""
    size = CIPHER_KEY_LENGTHS.get(cipher_name)
    if size is None or len(data) == size:
        return data
    if len(data) > size:
        return data[-size:]
    return b"\x00" * (size - len(data)) + data


class PassphraseKey(Key):
    """A passphrase plus the cipher key derived from it."""

    def __init__(self, cipher_name: str, hash_name: str, password: str):
        self.password = password
        self.hashed_password = HASHES[hash_name](password.encode("utf-8")).hexdigest()
        self.padded_hashed_password = pad_or_trim(self.hashed_password.encode("ascii"), cipher_name)

    def plaintext(self) -> str:
        return self.password

    def to_dict(self) -> Dict[str, str]:
        return {"password": self.password}

    def __repr__(self) -> str:
        return "PassphraseKey(password=***)"


def _read_password(stream: BinaryIO) -> str:
    try:
        payload = json.load(stream)
    except (ValueError, UnicodeDecodeError) as e:
        raise EncryptionConfigError(f"unable to load key: {e}") from e
    if not isinstance(payload, dict) or not isinstance(payload.get("password"), str):
        raise EncryptionConfigError("unable to load key: expected a JSON object with a 'password' string")
    return payload["password"]


class AEADCrypter(EncryptionModule):
    """AES-GCM encryption module keyed by a hashed passphrase."""

    def __init__(self, key: PassphraseKey, cipher_name: str = "aes"):
        if cipher_name != "aes":
            raise UnsupportedCipherError(f"unsupported cipher {cipher_name}")
        self.key = key
        self._aead = AESGCM(key.padded_hashed_password)

    def encrypt(self, data: bytes) -> bytes:
        nonce = os.urandom(NONCE_SIZE)
        return nonce + self._aead.encrypt(nonce, data, None)

    def decrypt(self, data: bytes) -> bytes:
        if len(data) < NONCE_SIZE:
            raise DecryptionError(f"ciphertext too short: {len(data)} bytes, expected at least {NONCE_SIZE}")
        nonce, ciphertext = data[:NONCE_SIZE], data[NONCE_SIZE:]
        try:
            return self._aead.decrypt(nonce, ciphertext, None)
        except InvalidTag as e:
            raise DecryptionError("decryption failed: authentication tag mismatch (wrong key or tampered data)") from e

    def decryption_keys(self) -> List[Key]:
        return [self.key]


def new(config: EncryptionConfig, primary_keys: BinaryIO, secondary_keys: BinaryIO) -> AEADCrypter:
    """
    Build an AEADCrypter from an encryption config.

    Params:
        cipher: "aes" (default)
        hash: "md5" (default for aes), "sha1", "sha256" or "sha512"

    The primary key stream holds {"password": "..."}; the secondary stream is unused.

    Raises:
        UnsupportedCipherError: If params.cipher is not supported
        UnsupportedHashError: If params.hash is not supported
        EncryptionConfigError: If the key cannot be read
    """
    cipher_name = config.params.get("cipher") or "aes"
    if cipher_name not in CIPHER_KEY_LENGTHS:
        raise UnsupportedCipherError(f"unsupported cipher {cipher_name}")

    # Missing and empty both select the cipher's default digest
    hash_name = config.params.get("hash") or DEFAULT_HASHES[cipher_name]
    if hash_name not in HASHES:
        raise UnsupportedHashError(f"unsupported hash {hash_name}")

    password = _read_password(primary_keys)
    return AEADCrypter(PassphraseKey(cipher_name, hash_name, password), cipher_name)
