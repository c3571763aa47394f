# src/codec/artifact_codec.py — v2
"""Artifact codec: bytes <-> data URL text, safe for string-keyed stores.

Encoded form is an RFC 2397 data URL, ``data:<mime>;base64,<payload>``.
The MIME marker lets the receiving side recover the type without any
side channel; file names travel next to the encoded text.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import mimetypes
import re
from pathlib import Path

from imageflow.core.errors import EncodingError
from imageflow.core.models import Artifact, ArtifactRef
from imageflow.core.tools import extension_for_mime_type, normalize_mime_type

logger = logging.getLogger(__name__)

_DATA_URL_RE = re.compile(
    r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(?:;[\w.+-]+=[^;,]*)*)"
    r"(?P<b64>;base64)?,(?P<payload>.*)$",
    re.DOTALL,
)
_DEFAULT_MIME = "application/octet-stream"
_MIME_TOKEN_RE = re.compile(r"^[\w.+-]+/[\w.+-]+$")


def encode_artifact(artifact: Artifact) -> str:
    """Encode an artifact's bytes as a data URL.

    Raises:
        EncodingError: If the artifact carries no readable binary payload.
    """
    data = artifact.data
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise EncodingError(f"Artifact {artifact.file_name!r} has no binary payload")
    mime_type = _marker_mime_type(artifact.mime_type)
    try:
        payload = base64.b64encode(bytes(data)).decode("ascii")
    except (TypeError, ValueError) as e:
        raise EncodingError(f"Cannot encode {artifact.file_name!r}: {e}") from e
    return f"data:{mime_type};base64,{payload}"


def decode_artifact(
    text: str | None,
    fallback_file_name: str,
    fallback_mime_type: str,
) -> Artifact | None:
    """Decode a data URL back into an Artifact.

    Returns None on malformed input so a corrupted handoff behaves like no
    handoff at all. The MIME type comes from the embedded marker when
    present, else from ``fallback_mime_type``.
    """
    if not text or not isinstance(text, str):
        return None
    match = _DATA_URL_RE.match(text.strip())
    if match is None:
        logger.debug("Rejecting artifact payload without data URL prefix")
        return None
    if not match.group("b64"):
        logger.debug("Rejecting non-base64 data URL")
        return None
    try:
        data = base64.b64decode(match.group("payload"), validate=True)
    except (binascii.Error, ValueError) as e:
        logger.warning("Failed to decode artifact %s: %s", fallback_file_name, e)
        return None

    mime_type = (
        match.group("mime")
        or (fallback_mime_type or "").strip()
        or _DEFAULT_MIME
    )
    return Artifact(
        file_name=fallback_file_name or f"artifact.{extension_for_mime_type(mime_type)}",
        mime_type=mime_type,
        data=data,
    )


def _marker_mime_type(mime_type: str | None) -> str:
    """MIME type for the data URL marker, kept as labelled when it fits there."""
    label = (mime_type or "").strip()
    if _MIME_TOKEN_RE.match(label):
        return label
    return normalize_mime_type(label) or _DEFAULT_MIME


def guess_mime_type(file_name: str) -> str | None:
    guessed, _ = mimetypes.guess_type(file_name)
    return normalize_mime_type(guessed)


async def read_artifact(ref: ArtifactRef) -> Artifact:
    """Read a producer's output file into an Artifact.

    Raises:
        EncodingError: If the file cannot be read or its type is unknown.
    """
    path = Path(ref.path).expanduser()
    file_name = ref.file_name or path.name
    mime_type = normalize_mime_type(ref.mime_type) or guess_mime_type(file_name)
    if mime_type is None:
        raise EncodingError(f"Cannot determine the type of {file_name!r}")
    try:
        data = await asyncio.to_thread(path.read_bytes)
    except OSError as e:
        raise EncodingError(f"Cannot read {path}: {e}") from e
    return Artifact(file_name=file_name, mime_type=mime_type, data=data)


async def resolve_artifact(source: Artifact | ArtifactRef) -> Artifact:
    """Return an in-memory Artifact, reading the file behind a ref if needed."""
    if isinstance(source, Artifact):
        return source
    return await read_artifact(source)


async def write_artifact(artifact: Artifact, directory: Path) -> Path:
    """Write a received artifact into directory and return its path."""
    directory = Path(directory).expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    # Never let a stored file name escape the target directory.
    target = directory / Path(artifact.file_name).name
    await asyncio.to_thread(target.write_bytes, artifact.data)
    return target
