"""A directory laid out as ``<root>/<bucket>/<object path>`` viewed as an object store."""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath

from supabase_migrator.exceptions import StorageError
from supabase_migrator.types import Bucket, StorageObject
from supabase_migrator.utils.logging import log_with_context


class LocalDirectoryStore:
    """Local mirror of a storage service.

    Offers the same bucket and object operations as
    :class:`~supabase_migrator.services.storage_client.StorageClient`, so the
    transfer engine can download into it (backups) or upload from it
    (restores). Bucket visibility has no on-disk form; it is tracked in
    ``visibility`` and can be seeded from a backup's metadata.
    """

    def __init__(
        self,
        root: Path,
        visibility: dict[str, bool] | None = None,
        bucket_paths: dict[str, Path] | None = None,
    ) -> None:
        self.root = Path(root)
        self.visibility: dict[str, bool] = dict(visibility or {})
        # Buckets pinned to explicit directories instead of <root>/<bucket>
        self.bucket_paths = {name: Path(path) for name, path in (bucket_paths or {}).items()}

    @classmethod
    def single_bucket(
        cls, directory: Path, bucket: str, public: bool = False
    ) -> LocalDirectoryStore:
        """Expose one plain directory as the only bucket, named ``bucket``."""
        return cls(directory, {bucket: public}, bucket_paths={bucket: directory})

    def _bucket_path(self, bucket: str) -> Path:
        if bucket in self.bucket_paths:
            return self.bucket_paths[bucket]
        if not bucket or "/" in bucket or bucket in (".", ".."):
            raise StorageError(f"Invalid bucket name: {bucket!r}")
        return self.root / bucket

    def _object_path(self, bucket: str, name: str) -> Path:
        relative = PurePosixPath(name)
        if relative.is_absolute() or ".." in relative.parts or not relative.parts:
            raise StorageError(f"Refusing unsafe object path: {bucket}/{name}")
        return self._bucket_path(bucket).joinpath(*relative.parts)

    def list_buckets(self) -> list[Bucket]:
        if self.bucket_paths:
            return [
                Bucket(name=name, public=self.visibility.get(name, False))
                for name, path in self.bucket_paths.items()
                if path.is_dir()
            ]
        if not self.root.is_dir():
            return []
        return [
            Bucket(name=path.name, public=self.visibility.get(path.name, False))
            for path in sorted(self.root.iterdir())
            if path.is_dir()
        ]

    def create_bucket(self, name: str, public: bool = False) -> bool:
        path = self._bucket_path(name)
        existed = path.is_dir()
        path.mkdir(parents=True, exist_ok=True)
        self.visibility[name] = public
        if existed:
            log_with_context(logging.DEBUG, f"Directory for bucket '{name}' already exists")
        return not existed

    def list_all_objects(self, bucket: str) -> list[StorageObject]:
        bucket_path = self._bucket_path(bucket)
        if not bucket_path.is_dir():
            return []
        return [
            StorageObject(
                name=path.relative_to(bucket_path).as_posix(),
                size=path.stat().st_size,
            )
            for path in sorted(bucket_path.rglob("*"))
            if path.is_file()
        ]

    def download(self, bucket: str, path: str) -> bytes:
        return self._object_path(bucket, path).read_bytes()

    def upload(self, bucket: str, path: str, data: bytes) -> None:
        target = self._object_path(bucket, path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
