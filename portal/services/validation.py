import logging
import re

from fastapi import HTTPException

from portal.models.submission import DocumentClassification
from portal.services.storage import sanitize_filename

logger = logging.getLogger(__name__)

MAX_FIELD_LENGTH = 255
MAX_SLUG_LENGTH = 50
MAX_URL_LENGTH = 2048
CANONICAL_LAW_PREFIX = "https://wetten.overheid.nl"

_SLUG_RE = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$")

ALLOWED_MIME_TYPES = frozenset(
    {
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "application/vnd.ms-powerpoint",
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",
        "application/vnd.oasis.opendocument.text",
        "application/rtf",
        "text/plain",
        "text/markdown",
        "text/csv",
    }
)

DANGEROUS_EXTENSIONS = (
    ".php", ".phtml", ".php3", ".php4", ".php5", ".php7", ".phps",
    ".asp", ".aspx", ".jsp", ".jspx", ".cgi", ".pl",
    ".py", ".pyc", ".pyo", ".rb", ".erb",
    ".exe", ".bat", ".cmd", ".com", ".msi", ".dll",
    ".sh", ".bash", ".zsh", ".ksh",
    ".js", ".jsx", ".ts", ".tsx", ".mjs",
    ".htaccess", ".htpasswd",
    ".jar", ".war", ".ear", ".class",
)


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=400, detail=message)


def validate_slug(slug: str) -> str:
    if not slug or len(slug) > MAX_SLUG_LENGTH or not _SLUG_RE.match(slug):
        raise _bad_request("Invalid submission reference")
    return slug


def is_valid_email(email: str) -> bool:
    email = email.strip()
    if len(email) <= 2 or email.count("@") != 1:
        return False
    local, domain = email.split("@")
    return bool(local) and "." in domain


def clean_required(value: str | None, label: str) -> str:
    value = (value or "").strip()
    if not value:
        raise _bad_request(f"{label} is required")
    if len(value) > MAX_FIELD_LENGTH:
        raise _bad_request(f"{label} must be at most {MAX_FIELD_LENGTH} characters")
    return value


def clean_optional(value: str | None, label: str) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if len(value) > MAX_FIELD_LENGTH:
        raise _bad_request(f"{label} must be at most {MAX_FIELD_LENGTH} characters")
    return value


def clean_email(value: str | None) -> str | None:
    value = clean_optional(value, "Email")
    if value is not None and not is_valid_email(value):
        raise _bad_request("Invalid email address")
    return value


def validate_external_url(url: str) -> str:
    url = url.strip()
    if not url:
        raise _bad_request("URL is required")
    if not (url.startswith("http://") or url.startswith("https://")):
        raise _bad_request("URL must start with http:// or https://")
    if len(url) > MAX_URL_LENGTH:
        raise _bad_request(f"URL must be at most {MAX_URL_LENGTH} characters")
    if not url.startswith(CANONICAL_LAW_PREFIX):
        logger.warning("Formal law URL outside %s: %s", CANONICAL_LAW_PREFIX, url)
    return url


def validate_classification(classification: DocumentClassification) -> None:
    if classification == DocumentClassification.restricted:
        raise _bad_request(
            "Restricted documents cannot be uploaded. Only public or "
            "limited-use documents are accepted."
        )


def has_dangerous_extension(filename: str) -> bool:
    lowered = filename.lower()
    return any(
        lowered.endswith(ext) or f"{ext}." in lowered for ext in DANGEROUS_EXTENSIONS
    )


def validate_upload(filename: str, content_type: str | None, size: int, max_size: int) -> None:
    mime = (content_type or "").split(";")[0].strip().lower()
    if mime not in ALLOWED_MIME_TYPES:
        raise _bad_request(f"File type not allowed: {mime or 'unknown'}")
    if size > max_size:
        raise _bad_request(
            f"File too large. Maximum size: {max_size // 1024 // 1024}MB"
        )
    if size == 0:
        raise _bad_request("File is empty")
    if has_dangerous_extension(filename) or has_dangerous_extension(
        sanitize_filename(filename)
    ):
        raise _bad_request("File extension not allowed")
