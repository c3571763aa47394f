# src/core/tools.py — v1
"""Image tool catalog and format-compatibility lookup.

The set of tools is closed. Each entry declares which MIME types the tool
accepts as input and, when the tool always produces one format, its output
MIME type. Compatibility is a plain table lookup:
(artifact MIME type, target tool) -> bool.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable


class ToolId(str, Enum):
    """Identifier of one image-processing capability."""

    QR_CODE_GENERATOR = "qr-code-generator"
    COLOR_PICKER = "color-picker"
    HEX_RGB_CONVERTER = "hex-rgb-converter"
    BACKGROUND_REMOVER = "background-remover"
    IMAGE_RESIZER = "image-resizer"
    IMAGE_COMPRESSOR = "image-compressor"
    JPG_TO_PNG = "jpg-to-png"
    PNG_TO_WEBP = "png-to-webp"
    IMAGE_CROPPER = "image-cropper"
    BARCODE_GENERATOR = "barcode-generator"
    IMAGE_TO_PDF = "image-to-pdf"
    PDF_EDITOR = "pdf-editor"
    PDF_MERGE = "pdf-merge"
    PDF_SPLIT = "pdf-split"
    PDF_COMPRESSOR = "pdf-compressor"
    PDF_TO_WORD = "pdf-to-word"
    WORD_TO_PDF = "word-to-pdf"
    PDF_TO_JPG = "pdf-to-jpg"


PNG = "image/png"
JPEG = "image/jpeg"
WEBP = "image/webp"
PDF = "application/pdf"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

RASTER_TYPES: tuple[str, ...] = (PNG, JPEG, WEBP)


@dataclass(frozen=True)
class ToolSpec:
    """Static description of a tool's input and output formats."""

    title: str
    accepts: tuple[str, ...] = ()
    output_mime_type: str | None = None

    @property
    def takes_input(self) -> bool:
        return bool(self.accepts)


TOOL_CATALOG: dict[ToolId, ToolSpec] = {
    ToolId.QR_CODE_GENERATOR: ToolSpec("QR Code Generator", (), PNG),
    ToolId.COLOR_PICKER: ToolSpec("Color Picker", RASTER_TYPES),
    ToolId.HEX_RGB_CONVERTER: ToolSpec("HEX to RGB Converter"),
    ToolId.BACKGROUND_REMOVER: ToolSpec("Background Remover", RASTER_TYPES, PNG),
    # Resizer and compressor keep the input format unless the user picks one.
    ToolId.IMAGE_RESIZER: ToolSpec("Image Resizer", RASTER_TYPES),
    ToolId.IMAGE_COMPRESSOR: ToolSpec("Image Compressor", RASTER_TYPES),
    ToolId.JPG_TO_PNG: ToolSpec("JPG to PNG Converter", (JPEG,), PNG),
    ToolId.PNG_TO_WEBP: ToolSpec("PNG to WebP Converter", (PNG,), WEBP),
    ToolId.IMAGE_CROPPER: ToolSpec("Image Cropper", RASTER_TYPES),
    ToolId.BARCODE_GENERATOR: ToolSpec("Barcode Generator", (), PNG),
    ToolId.IMAGE_TO_PDF: ToolSpec("Image to PDF Converter", RASTER_TYPES, PDF),
    ToolId.PDF_EDITOR: ToolSpec("PDF Editor", (PDF,), PDF),
    ToolId.PDF_MERGE: ToolSpec("PDF Merge", (PDF,), PDF),
    ToolId.PDF_SPLIT: ToolSpec("PDF Split", (PDF,), PDF),
    ToolId.PDF_COMPRESSOR: ToolSpec("PDF Compressor", (PDF,), PDF),
    ToolId.PDF_TO_WORD: ToolSpec("PDF to Word Converter", (PDF,), DOCX),
    ToolId.WORD_TO_PDF: ToolSpec("Word to PDF Converter", (DOCX,), PDF),
    ToolId.PDF_TO_JPG: ToolSpec("PDF to JPG Converter", (PDF,), JPEG),
}

# Predicate supplied by producers: (artifact MIME type, target tool) -> bool.
CompatibilityCheck = Callable[[str, ToolId], bool]

_MIME_ALIASES: dict[str, str] = {
    "image/jpg": JPEG,
    "image/pjpeg": JPEG,
    "image/x-png": PNG,
}

_EXTENSIONS: dict[str, str] = {
    PNG: "png",
    JPEG: "jpg",
    WEBP: "webp",
    PDF: "pdf",
    DOCX: "docx",
}

_LABELS: dict[str, str] = {
    PNG: "PNG",
    JPEG: "JPEG",
    WEBP: "WebP",
    PDF: "PDF",
    DOCX: "Word",
}


def parse_tool_id(value: str | ToolId) -> ToolId | None:
    """Return the ToolId for a raw value, or None if it is not a known tool."""
    if isinstance(value, ToolId):
        return value
    try:
        return ToolId(str(value).strip().lower())
    except ValueError:
        return None


def get_tool_spec(tool_id: ToolId) -> ToolSpec:
    return TOOL_CATALOG[tool_id]


def normalize_mime_type(value: str | None) -> str | None:
    """Lower-case a MIME type, strip parameters and fold known aliases."""
    if not value:
        return None
    base = value.split(";", 1)[0].strip().lower()
    if "/" not in base:
        return None
    return _MIME_ALIASES.get(base, base)


def extension_for_mime_type(mime_type: str) -> str:
    """File extension (without dot) for a MIME type; png when unknown."""
    return _EXTENSIONS.get(normalize_mime_type(mime_type) or "", "png")


def label_for_mime_type(mime_type: str) -> str:
    normalized = normalize_mime_type(mime_type) or mime_type
    return _LABELS.get(normalized, mime_type)


def is_compatible(mime_type: str, target_tool: ToolId) -> bool:
    """Return True if target_tool can take an artifact of mime_type as input."""
    normalized = normalize_mime_type(mime_type)
    if normalized is None:
        return False
    spec = TOOL_CATALOG.get(target_tool)
    if spec is None:
        return False
    return normalized in spec.accepts


def compatible_targets(mime_type: str, exclude: ToolId | None = None) -> list[ToolId]:
    """All tools that accept mime_type, in catalog order."""
    return [
        tool_id
        for tool_id in TOOL_CATALOG
        if tool_id != exclude and is_compatible(mime_type, tool_id)
    ]
