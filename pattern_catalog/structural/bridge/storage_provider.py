"""
Storage bridge.

``StoredFile`` subclasses decide how content is encoded; ``StorageProvider``
implementations decide where the bytes live. Moving a file to another
cloud is a matter of handing it a different provider.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from ...exceptions import ResourceNotFoundException, ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import simulate_latency_sync

logger = get_logger(__name__)


class StorageProvider(ABC):
    """In-memory stand-in for a cloud object store."""

    scheme = ""

    def __init__(self, bucket: str):
        self.bucket = bucket
        self._objects: Dict[str, bytes] = {}

    def upload(self, key: str, data: bytes) -> str:
        simulate_latency_sync(30)
        self._objects[key] = bytes(data)
        logger.info("Object uploaded", provider=self.scheme, key=key, size=len(data))
        return self.url_for(key)

    def download(self, key: str) -> bytes:
        simulate_latency_sync(20)
        if key not in self._objects:
            raise ResourceNotFoundException("object", self.url_for(key))
        return self._objects[key]

    def delete(self, key: str) -> bool:
        return self._objects.pop(key, None) is not None

    def list(self, prefix: str = "") -> List[str]:
        return sorted(k for k in self._objects if k.startswith(prefix))

    @abstractmethod
    def url_for(self, key: str) -> str: ...


class S3Provider(StorageProvider):
    scheme = "s3"

    def url_for(self, key: str) -> str:
        return f"s3://{self.bucket}/{key}"


class AzureBlobProvider(StorageProvider):
    scheme = "azure"

    def url_for(self, key: str) -> str:
        return f"https://{self.bucket}.blob.core.windows.net/{key}"


class GcsProvider(StorageProvider):
    scheme = "gs"

    def url_for(self, key: str) -> str:
        return f"gs://{self.bucket}/{key}"


class StoredFile(ABC):
    def __init__(self, key: str, provider: StorageProvider):
        self.key = key
        self.provider = provider

    def save(self, content: Any) -> str:
        return self.provider.upload(self.key, self.encode(content))

    def load(self) -> Any:
        return self.decode(self.provider.download(self.key))

    @abstractmethod
    def encode(self, content: Any) -> bytes: ...

    @abstractmethod
    def decode(self, data: bytes) -> Any: ...


class TextFile(StoredFile):
    def encode(self, content: str) -> bytes:
        return content.encode("utf-8")

    def decode(self, data: bytes) -> str:
        return data.decode("utf-8")


class JsonFile(StoredFile):
    def encode(self, content: Any) -> bytes:
        return json.dumps(content, sort_keys=True).encode("utf-8")

    def decode(self, data: bytes) -> Any:
        try:
            return json.loads(data)
        except json.JSONDecodeError as e:
            raise ValidationException(self.key, data[:40], f"invalid JSON: {e.msg}") from e


def migrate(file: StoredFile, new_provider: StorageProvider, delete_source: bool = True) -> StoredFile:
    """Copy ``file`` to ``new_provider`` and point it there."""
    data = file.provider.download(file.key)
    new_provider.upload(file.key, data)
    if delete_source:
        file.provider.delete(file.key)
    logger.info("File migrated", key=file.key, source=file.provider.scheme, target=new_provider.scheme)
    file.provider = new_provider
    return file


@demo(
    "bridge.storage-provider",
    pattern="Bridge",
    category=Category.STRUCTURAL,
    title="File types independent of the cloud they are stored in",
)
def run_demo() -> None:
    s3 = S3Provider("acme-assets")
    azure = AzureBlobProvider("acmeassets")
    gcs = GcsProvider("acme-archive")

    readme = TextFile("docs/readme.txt", s3)
    settings_file = JsonFile("config/settings.json", azure)
    print(f"Saved {readme.save('Hello from the bridge pattern')}")
    print(f"Saved {settings_file.save({'theme': 'dark', 'beta': True})}")
    print(f"Loaded {settings_file.load()}")

    migrate(readme, gcs)
    print(f"Readme now at {gcs.url_for(readme.key)}: {readme.load()!r}; s3 keys={s3.list()}")

    s3.upload("broken.json", b"{oops")
    try:
        JsonFile("broken.json", s3).load()
    except ValidationException as e:
        print(f"Rejected: {e.message}")


if __name__ == "__main__":
    run_module(run_demo)
