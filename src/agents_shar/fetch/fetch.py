"""Package sources: a local directory tree or an S3-compatible object store."""

from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import Dict, Optional, Tuple

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from agents_shar.core.exceptions import ConfigurationError, PackageFetchError
from agents_shar.core.models import PackageMatch


logger = structlog.get_logger()

# Error codes that mean "the object is not there" rather than "the store is broken"
_MISSING_CODES = {"NoSuchKey", "404", "NotFound"}


def agent_basename(agent: str) -> str:
    """Last path component of an agent identifier (agents/foo -> foo)."""
    return agent.rstrip("/").rsplit("/", 1)[-1]


def _parse_s3_url(url: str) -> Tuple[str, str]:
    """Parse s3://bucket[/prefix] URL into (bucket, prefix)."""
    if not url.startswith("s3://"):
        raise ValueError("Not an s3 URL")
    rest = url[len("s3://"):]
    parts = rest.split("/", 1)
    if not parts[0]:
        raise ValueError("Invalid s3 URL; expected s3://bucket/prefix")
    prefix = parts[1].strip("/") if len(parts) == 2 else ""
    return parts[0], prefix


def _join_key(*parts: str) -> str:
    return "/".join(p.strip("/") for p in parts if p and p.strip("/"))


def _write_stream_to_file(stream_iter, dest_path: Path, max_size_bytes: int) -> int:
    """Write streaming bytes to file with max-size enforcement.

    stream_iter can be an iterator of bytes chunks.
    Returns number of bytes written.
    """
    tmp_file = dest_path.with_name(dest_path.name + ".downloading")
    bytes_written = 0
    with open(tmp_file, "wb") as f:
        for chunk in stream_iter:
            if not chunk:
                continue
            bytes_written += len(chunk)
            if bytes_written > max_size_bytes:
                f.close()
                tmp_file.unlink(missing_ok=True)
                raise PackageFetchError("Package exceeds maximum allowed size")
            f.write(chunk)
    os.replace(tmp_file, dest_path)
    return bytes_written


class LocalSource:
    """Packages laid out as <root>/<agent>/<file> on the local filesystem."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def __str__(self) -> str:
        return str(self.root)

    def list_candidates(self, agent: str, build_name: str) -> Dict[str, str]:
        """Map each file under the agent directory to its path."""
        agent_dir = self.root / agent
        if not agent_dir.is_dir():
            logger.debug("Agent directory does not exist", agent_dir=str(agent_dir))
            return {}
        try:
            return {
                entry.name: str(entry)
                for entry in agent_dir.iterdir()
                if entry.is_file()
            }
        except OSError as e:
            raise PackageFetchError(f"failed to list {agent_dir}: {e}")

    def fetch(self, match: PackageMatch, dest_dir: Path) -> Path:
        dest = dest_dir / match.filename
        logger.info("Copying package", agent=match.agent, src=match.location, dest=str(dest))
        try:
            shutil.copy2(match.location, dest)
        except OSError as e:
            raise PackageFetchError(f"failed to copy {match.location}: {e}")
        return dest


class ObjectStoreSource:
    """Packages in an S3-compatible store, found through "<build>-latest" pointers.

    For agent ``agents/foo`` and build name ``master`` the object
    ``<prefix>/agents/foo/master-latest`` holds the location of the newest
    build directory, whose ``foo/`` subdirectory lists the package files.
    """

    def __init__(self, url: str, client, *, max_size_bytes: int = 1024 * 1024 * 1024):
        try:
            self.bucket, self.prefix = _parse_s3_url(url)
        except ValueError as e:
            raise ConfigurationError(f"invalid source location {url}: {e}")
        self.url = url
        self.client = client
        self.max_size_bytes = max_size_bytes

    def __str__(self) -> str:
        return self.url

    def _latest_dir(self, agent: str, build_name: str) -> Optional[Tuple[str, str]]:
        """Resolve the latest pointer into (bucket, key prefix), None if absent."""
        pointer = _join_key(self.prefix, agent, f"{build_name}-latest")
        pointer_url = f"s3://{self.bucket}/{pointer}"
        try:
            obj = self.client.get_object(Bucket=self.bucket, Key=pointer)
            raw = obj["Body"].read()
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _MISSING_CODES:
                logger.debug("No latest pointer", key=pointer)
                return None
            raise PackageFetchError(f"failed to read {pointer_url}: {e}")
        except BotoCoreError as e:
            raise PackageFetchError(f"failed to read {pointer_url}: {e}")

        try:
            target = raw.decode("utf-8").strip()
            if not target:
                return None
            if target.startswith("s3://"):
                return _parse_s3_url(target)
        except (UnicodeDecodeError, ValueError) as e:
            raise PackageFetchError(f"invalid latest pointer {pointer_url}: {e}")
        return self.bucket, target.strip("/")

    def list_candidates(self, agent: str, build_name: str) -> Dict[str, str]:
        """Map each object under the latest build directory to its s3:// URL."""
        latest = self._latest_dir(agent, build_name)
        if latest is None:
            return {}
        bucket, latest_key = latest
        list_prefix = _join_key(latest_key, agent_basename(agent)) + "/"

        candidates: Dict[str, str] = {}
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=bucket, Prefix=list_prefix, Delimiter="/"):
                for item in page.get("Contents", []):
                    name = item["Key"][len(list_prefix):]
                    if name:
                        candidates[name] = f"s3://{bucket}/{item['Key']}"
        except (ClientError, BotoCoreError) as e:
            raise PackageFetchError(f"failed to list s3://{bucket}/{list_prefix}: {e}")
        return candidates

    def fetch(self, match: PackageMatch, dest_dir: Path) -> Path:
        bucket, key = _parse_s3_url(match.location)
        dest = dest_dir / match.filename
        logger.info("Downloading package from S3", agent=match.agent, bucket=bucket, key=key, dest=str(dest))
        try:
            obj = self.client.get_object(Bucket=bucket, Key=key)
            body = obj["Body"]
            bytes_written = _write_stream_to_file(body.iter_chunks(64 * 1024), dest, self.max_size_bytes)
        except (ClientError, BotoCoreError, OSError) as e:
            raise PackageFetchError(f"failed to download {match.location}: {e}")
        logger.info("Downloaded package from S3", agent=match.agent, bytes=bytes_written)
        return dest


def open_source(source: str, settings) -> "LocalSource | ObjectStoreSource":
    """Pick the source implementation for a -d argument.

    An existing local directory always wins, even if the string also reads
    as an s3:// location.
    """
    if Path(source).is_dir():
        if source.startswith("s3://"):
            logger.warning("Source names both a local directory and a remote location; using local",
                           source=source)
        return LocalSource(Path(source))

    if source.startswith("s3://"):
        import boto3
        try:
            client = boto3.client(
                "s3",
                endpoint_url=settings.s3_endpoint_url,
                aws_access_key_id=settings.aws_access_key_id,
                aws_secret_access_key=settings.aws_secret_access_key,
                region_name=settings.aws_region,
            )
        except (BotoCoreError, ValueError) as e:
            raise ConfigurationError(f"cannot create object store client: {e}", code="invalid_store")
        return ObjectStoreSource(
            source,
            client,
            max_size_bytes=settings.max_package_size_mb * 1024 * 1024,
        )

    raise ConfigurationError(
        f"source is neither a local directory nor an s3:// location: {source}",
        code="invalid_source",
    )
