"""Tests for hashing and URL helpers."""

from __future__ import annotations

import hashlib
import uuid

import pytest

from docsync.utils.hashing import (
    generate_hash,
    generate_metadata_uuid,
    hash_to_uuid,
    is_valid_uuid,
)
from docsync.utils.urls import (
    build_url,
    get_url_prefix,
    is_pdf_url,
    normalize_url,
    should_process_url,
    url_extension,
)


class TestHashing:
    def test_generate_hash_is_sha256(self):
        assert generate_hash("abc") == hashlib.sha256(b"abc").hexdigest()

    def test_generate_hash_deterministic(self):
        assert generate_hash("same") == generate_hash("same")
        assert generate_hash("same") != generate_hash("same ")

    def test_hash_to_uuid_shape(self):
        h = generate_hash("chunk")
        u = hash_to_uuid(h)
        assert is_valid_uuid(u)
        assert u[14] == "5" and u[19] == "8"
        assert u.replace("-", "")[:12] == h[:12]

    def test_is_valid_uuid(self):
        assert is_valid_uuid("123e4567-e89b-42d3-a456-426614174000")
        assert not is_valid_uuid("not-a-uuid")
        assert not is_valid_uuid(generate_hash("x"))

    def test_metadata_uuid(self):
        u = generate_metadata_uuid("last_run_o_r")
        assert str(uuid.UUID(u)) == u
        assert u[14] == "4"
        assert u == generate_metadata_uuid("last_run_o_r")
        assert u != generate_metadata_uuid("last_run_o_s")


class TestUrls:
    def test_normalize_strips_query_and_fragment(self):
        assert normalize_url("https://x.test/a/b?q=1#frag") == "https://x.test/a/b"

    def test_normalize_keeps_trailing_slash(self):
        assert normalize_url("https://x.test/docs/") == "https://x.test/docs/"

    def test_get_url_prefix(self):
        assert get_url_prefix("https://x.test/docs/?v=2") == "https://x.test/docs/"
        assert get_url_prefix("relative/path") == "relative/path"

    def test_build_url(self):
        assert build_url("../b", "https://x.test/docs/a/") == "https://x.test/docs/b"
        assert build_url("/c", "https://x.test/docs/a") == "https://x.test/c"
        assert build_url("https://y.test/", "https://x.test/") == "https://y.test/"

    @pytest.mark.parametrize("url,expected", [
        ("https://x.test/page", True),
        ("https://x.test/page.html", True),
        ("https://x.test/manual.PDF", True),
        ("https://x.test/logo.png", False),
        ("https://x.test/app.js", False),
    ])
    def test_should_process_url(self, url, expected):
        assert should_process_url(url) is expected

    def test_extension_helpers(self):
        assert url_extension("https://x.test/a/b.Tar?x=1") == ".tar"
        assert is_pdf_url("https://x.test/spec.pdf")
        assert not is_pdf_url("https://x.test/pdf")
