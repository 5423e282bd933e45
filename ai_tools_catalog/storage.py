"""Optional MinIO mirror for the SQLite catalog file.

With ``AITOOLS_STORAGE_BACKEND=minio`` the catalog database is pulled from
the bucket before a scraping run and pushed back afterwards. The default
``local`` backend leaves the file where ``CATALOG_DB_PATH`` points.
"""

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator
from typing import Optional

from minio import Minio
from minio.error import S3Error

logger = logging.getLogger(__name__)

CATALOG_OBJECT_KEY = "catalog.db"

# Lazy initialization of Minio client
_minio_client: Optional[Minio] = None


def storage_backend() -> str:
    backend = os.getenv("AITOOLS_STORAGE_BACKEND", "local").lower()
    if backend not in ("local", "minio"):
        raise ValueError(f"AITOOLS_STORAGE_BACKEND must be 'local' or 'minio', got {backend!r}")
    return backend


def use_minio() -> bool:
    return storage_backend() == "minio"


def bucket_name() -> str:
    return os.environ["MINIO_BUCKET_NAME"]


def get_minio_client() -> Minio:
    """Get or create Minio client with lazy initialization."""
    global _minio_client
    if _minio_client is None:
        _minio_client = Minio(
            endpoint=os.environ["MINIO_ENDPOINT"],
            access_key=os.environ["MINIO_ACCESS_KEY"],
            secret_key=os.environ["MINIO_SECRET_KEY"],
            secure=os.getenv("MINIO_SECURE", "true").lower() == "true",
        )

        # Ensure bucket exists
        try:
            if not _minio_client.bucket_exists(bucket_name()):
                _minio_client.make_bucket(bucket_name())
                logger.info(f"Created bucket: {bucket_name()}")
        except S3Error as e:
            logger.error(f"Failed to ensure bucket exists: {e}")
            raise

    return _minio_client


def download_catalog(path: Path, client: Optional[Minio] = None) -> bool:
    """Fetch the catalog into ``path``. Returns False when the bucket has none yet."""
    client = client or get_minio_client()
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        client.fget_object(bucket_name(), CATALOG_OBJECT_KEY, str(path))
    except S3Error as e:
        if e.code == "NoSuchKey":
            logger.info("No catalog in MinIO yet, starting from the local file")
            return False
        raise
    logger.info(f"Downloaded catalog from MinIO to {path}")
    return True


def upload_catalog(path: Path, client: Optional[Minio] = None) -> None:
    client = client or get_minio_client()
    client.fput_object(bucket_name(), CATALOG_OBJECT_KEY, str(path), content_type="application/octet-stream")
    logger.info(f"Uploaded catalog {path} to MinIO")


@contextmanager
def synced_catalog(path: Path) -> Iterator[Path]:
    """Download before and upload after the block when the MinIO backend is active.

    Nothing is uploaded if the block raises.
    """
    if not use_minio():
        yield path
        return

    client = get_minio_client()
    download_catalog(path, client)
    yield path
    upload_catalog(path, client)
