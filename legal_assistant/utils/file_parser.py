"""
File Parser Utility
Turns uploaded evidence (images, PDFs) and dropped argument files into prompt-ready content
"""

import base64
import io
import logging

import pdfplumber

from legal_assistant.errors import ReadError, UnsupportedMediaError
from legal_assistant.models import Evidence, EvidenceKind, LoadedEvidence

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = 'application/pdf'
TEXT_MEDIA_TYPE = 'text/plain'

UNSUPPORTED_EVIDENCE_MESSAGE = '지원되지 않는 파일 형식입니다. PDF 또는 이미지 파일을 업로드해주세요.'
UNSUPPORTED_ARGUMENT_FILE_MESSAGE = '텍스트 파일(.txt)만 드롭할 수 있습니다.'
READ_FAILED_MESSAGE = '파일을 읽는 데 실패했습니다.'


def normalize_media_type(media_type: str) -> str:
    """Lower-case the bare type, e.g. 'Application/PDF; name=x' -> 'application/pdf'."""
    return (media_type or '').split(';')[0].strip().lower()


def evidence_kind(media_type: str) -> EvidenceKind:
    """Classify a media type as image or PDF evidence."""
    media_type = normalize_media_type(media_type)
    if media_type == PDF_MEDIA_TYPE:
        return EvidenceKind.PDF
    if media_type.startswith('image/'):
        return EvidenceKind.IMAGE
    raise UnsupportedMediaError(UNSUPPORTED_EVIDENCE_MESSAGE, detail=f"media type {media_type!r}")


def make_evidence(filename: str, media_type: str, data: bytes) -> Evidence:
    """Build an Evidence record, rejecting anything but images and PDFs."""
    media_type = normalize_media_type(media_type)
    kind = evidence_kind(media_type)
    return Evidence(filename=filename, media_type=media_type, data=data, kind=kind)


def load_evidence(evidence: Evidence) -> LoadedEvidence:
    if evidence.kind is EvidenceKind.IMAGE:
        return LoadedEvidence(
            kind=EvidenceKind.IMAGE,
            media_type=evidence.media_type,
            base64_data=encode_image(evidence.data),
        )
    if evidence.kind is EvidenceKind.PDF:
        return LoadedEvidence(
            kind=EvidenceKind.PDF,
            media_type=evidence.media_type,
            text=parse_pdf(evidence.data),
        )
    raise UnsupportedMediaError(UNSUPPORTED_EVIDENCE_MESSAGE, detail=f"kind {evidence.kind!r}")


def encode_image(data: bytes) -> str:
    """Base64-encode image bytes for an inline attachment."""
    if not data:
        raise ReadError(READ_FAILED_MESSAGE, detail='empty image payload')
    try:
        return base64.b64encode(data).decode('ascii')
    except TypeError as e:
        raise ReadError(READ_FAILED_MESSAGE, detail=str(e)) from e


def parse_pdf(data: bytes) -> str:
    """Extract text page by page.

    Words on a page are joined with single spaces, pages with newlines.
    The whole document is read into memory.
    """
    pages = []
    try:
        with pdfplumber.open(io.BytesIO(data)) as pdf:
            for page in pdf.pages:
                words = page.extract_words() or []
                pages.append(' '.join(word['text'] for word in words))
    except Exception as e:
        logger.error("PDF extraction failed: %s", e)
        raise ReadError(READ_FAILED_MESSAGE, detail=str(e)) from e
    return '\n'.join(pages)


def parse_txt(media_type: str, data: bytes) -> str:
    """Read a dropped argument file in full. Only text/plain is accepted."""
    if normalize_media_type(media_type) != TEXT_MEDIA_TYPE:
        raise UnsupportedMediaError(UNSUPPORTED_ARGUMENT_FILE_MESSAGE, detail=f"media type {media_type!r}")
    try:
        # A leading byte order mark is not part of the argument
        return data.decode('utf-8-sig')
    except UnicodeDecodeError as e:
        raise ReadError(READ_FAILED_MESSAGE, detail=str(e)) from e


def format_bytes(size: int, decimals: int = 2) -> str:
    """Human-readable file size, e.g. 1536 -> '1.5 KB'."""
    if size == 0:
        return '0 Bytes'
    units = ['Bytes', 'KB', 'MB', 'GB', 'TB']
    i = 0
    while size >= 1024 ** (i + 1) and i < len(units) - 1:
        i += 1
    value = round(size / (1024 ** i), max(decimals, 0))
    return f"{value:g} {units[i]}"
