"""Checksum and manifest files for a finished archive."""

import hashlib
import re
import uuid
from pathlib import Path
from typing import Dict, Optional, Tuple

import structlog

from agents_shar.core.models import BuildStamp

logger = structlog.get_logger()

DEFAULT_TEMPLATE = Path(__file__).resolve().parent.parent / "data" / "manifest.tmpl"

MANIFEST_TOKENS = ("UUID", "NAME", "VERSION", "SIZE", "SHA", "MD5")
_TOKEN_RE = re.compile("|".join(sorted(MANIFEST_TOKENS, key=len, reverse=True)))


def file_digests(path: Path) -> Tuple[str, str, int]:
    """Return (md5 hex, sha1 hex, size in bytes) of a file."""
    md5 = hashlib.md5()
    sha1 = hashlib.sha1()
    size = 0
    with open(path, "rb") as f:
        for block in iter(lambda: f.read(65536), b""):
            md5.update(block)
            sha1.update(block)
            size += len(block)
    return md5.hexdigest(), sha1.hexdigest(), size


def render_manifest(template: str, values: Dict[str, str]) -> str:
    """Substitute every token in one pass; substituted text is never rescanned."""
    missing = set(MANIFEST_TOKENS) - set(values)
    if missing:
        raise ValueError(f"missing manifest values: {', '.join(sorted(missing))}")
    return _TOKEN_RE.sub(lambda m: str(values[m.group(0)]), template)


def write_build_outputs(
    shar_path: Path,
    stamp: BuildStamp,
    name: str,
    output_dir: Path,
    template_path: Optional[Path] = None,
    image_uuid: Optional[str] = None,
) -> Tuple[Path, Path]:
    """Write the .md5sum and .manifest files that accompany shar_path."""
    md5_hex, sha1_hex, size = file_digests(shar_path)

    checksum_path = output_dir / stamp.artifact_name("md5sum")
    checksum_path.write_text(md5_hex + "\n", encoding="utf-8")

    template = Path(template_path or DEFAULT_TEMPLATE).read_text(encoding="utf-8")
    manifest = render_manifest(template, {
        "UUID": image_uuid or str(uuid.uuid4()),
        "NAME": name,
        "VERSION": stamp.stamp,
        "SIZE": str(size),
        "SHA": sha1_hex,
        "MD5": md5_hex,
    })
    manifest_path = output_dir / stamp.artifact_name("manifest")
    manifest_path.write_text(manifest, encoding="utf-8")

    logger.info("Wrote manifest", manifest=str(manifest_path), size=size, md5=md5_hex)
    return checksum_path, manifest_path
