"""
Stream decorators.

Encryption, compression and Base64 encoding each wrap a ``DataStream`` and
transform bytes on the way in and out. They stack in any order; reading
undoes the transformations in reverse.
"""

import base64
import os
import zlib
from abc import ABC, abstractmethod
from typing import List

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ...exceptions import ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)

KEY_SIZE = 32
IV_SIZE = 16
PBKDF2_ITERATIONS = 100_000


class DataStream(ABC):
    @abstractmethod
    def write(self, data: bytes) -> None: ...

    @abstractmethod
    def read(self) -> bytes: ...


class MemoryStream(DataStream):
    """Keeps the last written payload in memory."""

    def __init__(self) -> None:
        self._buffer = b""
        self.writes: List[int] = []

    def write(self, data: bytes) -> None:
        self._buffer = bytes(data)
        self.writes.append(len(data))

    def read(self) -> bytes:
        return self._buffer


class StreamDecorator(DataStream):
    def __init__(self, stream: DataStream):
        self.wrapped = stream

    def write(self, data: bytes) -> None:
        self.wrapped.write(self.encode(data))

    def read(self) -> bytes:
        return self.decode(self.wrapped.read())

    @abstractmethod
    def encode(self, data: bytes) -> bytes: ...

    @abstractmethod
    def decode(self, data: bytes) -> bytes: ...


class EncryptionDecorator(StreamDecorator):
    """AES-256-CTR; every write gets a fresh IV stored in front of the ciphertext."""

    def __init__(self, stream: DataStream, key: bytes):
        if len(key) != KEY_SIZE:
            raise ValidationException("key", f"{len(key)} bytes", f"AES-256 needs a {KEY_SIZE}-byte key")
        super().__init__(stream)
        self._key = key

    def encode(self, data: bytes) -> bytes:
        iv = os.urandom(IV_SIZE)
        encryptor = Cipher(algorithms.AES(self._key), modes.CTR(iv)).encryptor()
        return iv + encryptor.update(data) + encryptor.finalize()

    def decode(self, data: bytes) -> bytes:
        if len(data) < IV_SIZE:
            raise ValidationException("ciphertext", len(data), "shorter than the IV")
        iv, body = data[:IV_SIZE], data[IV_SIZE:]
        decryptor = Cipher(algorithms.AES(self._key), modes.CTR(iv)).decryptor()
        return decryptor.update(body) + decryptor.finalize()


class CompressionDecorator(StreamDecorator):
    def __init__(self, stream: DataStream, level: int = 6):
        super().__init__(stream)
        self.level = level

    def encode(self, data: bytes) -> bytes:
        compressed = zlib.compress(data, self.level)
        logger.debug("Compressed", original=len(data), compressed=len(compressed))
        return compressed

    def decode(self, data: bytes) -> bytes:
        return zlib.decompress(data)


class Base64Decorator(StreamDecorator):
    def encode(self, data: bytes) -> bytes:
        return base64.b64encode(data)

    def decode(self, data: bytes) -> bytes:
        return base64.b64decode(data)


def derive_key(passphrase: str, salt: bytes, iterations: int = PBKDF2_ITERATIONS) -> bytes:
    """32-byte key from a passphrase using PBKDF2-HMAC-SHA256."""
    kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=KEY_SIZE, salt=salt, iterations=iterations)
    return kdf.derive(passphrase.encode("utf-8"))


@demo(
    "decorator.encryption-stream",
    pattern="Decorator",
    category=Category.STRUCTURAL,
    title="Stackable compression, encryption and Base64 streams",
)
def run_demo() -> None:
    payload = ("account=4711;balance=1200.50;" * 20).encode()
    key = derive_key("correct horse battery staple", b"demo-salt")

    storage = MemoryStream()
    stream = CompressionDecorator(EncryptionDecorator(Base64Decorator(storage), key))
    stream.write(payload)

    print(f"Plain payload:  {len(payload)} bytes")
    print(f"Stored payload: {len(storage.read())} bytes compressed, encrypted, base64: {storage.read()[:24].decode()}...")
    print(f"Round trip ok:  {stream.read() == payload}")

    transport = MemoryStream()
    encoded = Base64Decorator(EncryptionDecorator(transport, key))
    encoded.write(b"same message")
    first = transport.read()
    encoded.write(b"same message")
    print(f"Fresh IV per write: {first != transport.read()}")

    try:
        EncryptionDecorator(MemoryStream(), b"short key")
    except ValidationException as e:
        print(f"Rejected: {e.message}")


if __name__ == "__main__":
    run_module(run_demo)
