from typing import BinaryIO


class StorageProvider:
    def save(self, stream: BinaryIO, key: str) -> str:
        """Store ``stream`` under ``key`` and return its public URL."""
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError
