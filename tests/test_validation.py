import pytest
from fastapi import HTTPException

from portal.models.submission import DocumentClassification
from portal.services.storage import sanitize_filename
from portal.services.validation import (
    clean_email,
    clean_required,
    has_dangerous_extension,
    is_valid_email,
    validate_classification,
    validate_external_url,
    validate_slug,
    validate_upload,
)

MAX = 50 * 1024 * 1024


class TestValidateSlug:
    @pytest.mark.parametrize(
        "slug",
        ["a", "0", "rr-20261019-abcd1234", "abc-def-ghi", "a1b2", "x" * 50, "a-b"],
    )
    def test_accepts_valid(self, slug):
        assert validate_slug(slug) == slug

    @pytest.mark.parametrize(
        "slug",
        [
            "",
            "-abc",
            "abc-",
            "-",
            "ABC",
            "rr-20261019-ABCD",
            "a" * 51,
            "abc_def",
            "abc def",
            "../etc",
            "abc.def",
        ],
    )
    def test_rejects_invalid(self, slug):
        with pytest.raises(HTTPException) as exc:
            validate_slug(slug)
        assert exc.value.status_code == 400


class TestEmail:
    @pytest.mark.parametrize(
        "email", ["jan@gemeente-x.nl", "a@b.c", " info@example.org "]
    )
    def test_valid(self, email):
        assert is_valid_email(email)

    @pytest.mark.parametrize(
        "email", ["", "ab", "no-at-sign.nl", "@example.org", "a@@b.nl", "a@b@c.nl", "a@localhost"]
    )
    def test_invalid(self, email):
        assert not is_valid_email(email)

    def test_clean_email_blank_is_none(self):
        assert clean_email("   ") is None

    def test_clean_email_rejects_invalid(self):
        with pytest.raises(HTTPException):
            clean_email("not-an-email")


class TestRequiredFields:
    def test_trims(self):
        assert clean_required("  Gemeente X ", "Organization") == "Gemeente X"

    def test_rejects_blank(self):
        with pytest.raises(HTTPException) as exc:
            clean_required("   ", "Name")
        assert "Name is required" in exc.value.detail

    def test_rejects_too_long(self):
        with pytest.raises(HTTPException):
            clean_required("x" * 256, "Name")


class TestExternalUrl:
    def test_accepts_canonical(self):
        url = "https://wetten.overheid.nl/BWBR0005416/2024-01-01"
        assert validate_external_url(f"  {url} ") == url

    def test_accepts_other_domain_with_warning(self, caplog):
        url = "https://example.org/law"
        with caplog.at_level("WARNING"):
            assert validate_external_url(url) == url
        assert "wetten.overheid.nl" in caplog.text

    @pytest.mark.parametrize("url", ["", "ftp://example.org", "javascript:alert(1)"])
    def test_rejects_bad_scheme(self, url):
        with pytest.raises(HTTPException):
            validate_external_url(url)

    def test_rejects_too_long(self):
        with pytest.raises(HTTPException):
            validate_external_url("https://wetten.overheid.nl/" + "a" * 2048)


class TestClassification:
    def test_restricted_rejected(self):
        with pytest.raises(HTTPException) as exc:
            validate_classification(DocumentClassification.restricted)
        assert exc.value.status_code == 400

    @pytest.mark.parametrize(
        "classification",
        [DocumentClassification.public, DocumentClassification.limited_use],
    )
    def test_others_allowed(self, classification):
        validate_classification(classification)


class TestDangerousExtensions:
    @pytest.mark.parametrize(
        "filename",
        [
            "malware.php",
            "MALWARE.PHP",
            "report.php.pdf",
            "script.js",
            "run.sh",
            "setup.exe",
            ".htaccess",
            "archive.jar",
            "notes.py.txt",
        ],
    )
    def test_blocked(self, filename):
        assert has_dangerous_extension(filename)

    @pytest.mark.parametrize(
        "filename", ["report.pdf", "beleid.docx", "data.csv", "readme.md", "phpinfo.pdf"]
    )
    def test_allowed(self, filename):
        assert not has_dangerous_extension(filename)


class TestValidateUpload:
    def test_accepts_pdf(self):
        validate_upload("report.pdf", "application/pdf", 1024, MAX)

    def test_accepts_content_type_parameters(self):
        validate_upload("notes.txt", "text/plain; charset=utf-8", 10, MAX)

    @pytest.mark.parametrize(
        "mime", ["text/html", "application/xml", "application/x-msdownload", None]
    )
    def test_rejects_mime(self, mime):
        with pytest.raises(HTTPException) as exc:
            validate_upload("report.pdf", mime, 1024, MAX)
        assert "not allowed" in exc.value.detail

    def test_rejects_oversize(self):
        with pytest.raises(HTTPException) as exc:
            validate_upload("report.pdf", "application/pdf", MAX + 1, MAX)
        assert "too large" in exc.value.detail

    def test_rejects_dangerous_name_despite_valid_mime(self):
        with pytest.raises(HTTPException) as exc:
            validate_upload("malware.php", "application/pdf", 1024, MAX)
        assert exc.value.detail == "File extension not allowed"

    @pytest.mark.parametrize("filename", ["evil.php ", "evil.php;", "evil.exe~"])
    def test_rejects_extension_exposed_after_sanitizing(self, filename):
        with pytest.raises(HTTPException) as exc:
            validate_upload(filename, "application/pdf", 1024, MAX)
        assert exc.value.detail == "File extension not allowed"


class TestSanitizeFilename:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("report.pdf", "report.pdf"),
            ("../../etc/passwd", "passwd"),
            ("C:\\Users\\jan\\beleid 2024.docx", "beleid_2024.docx"),
            (".hidden.txt", "hidden.txt"),
            ("__init__.txt", "init__.txt"),
            ("rapport (final).pdf", "rapport__final_.pdf"),
            ("...", "upload"),
            ("", "upload"),
            ("ü.pdf", "pdf"),
        ],
    )
    def test_sanitize(self, raw, expected):
        assert sanitize_filename(raw) == expected
