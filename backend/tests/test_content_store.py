import io
import time
from urllib.parse import parse_qs, urlparse

import pytest

from intake.services.content_store import LocalContentStore
from intake.services.exceptions import ContentStoreError, ObjectExistsError
from intake.services.signed_urls import SignedUrlIssuer


class TestLocalContentStore:
    def test_put_object_writes_bytes(self, content_store):
        path = content_store.put_object("uploads/1/A/x.jpg", b"jpeg bytes")
        assert path == "uploads/1/A/x.jpg"
        assert content_store.object_path(path).read_bytes() == b"jpeg bytes"

    def test_put_object_accepts_stream(self, content_store):
        content_store.put_object("uploads/1/A/s.txt", io.BytesIO(b"streamed"))
        assert content_store.object_path("uploads/1/A/s.txt").read_bytes() == b"streamed"

    def test_put_object_never_overwrites(self, content_store):
        content_store.put_object("uploads/1/A/x.jpg", b"first")
        with pytest.raises(ObjectExistsError):
            content_store.put_object("uploads/1/A/x.jpg", b"second")
        assert content_store.object_path("uploads/1/A/x.jpg").read_bytes() == b"first"

    def test_path_outside_root_rejected(self, content_store):
        with pytest.raises(ContentStoreError):
            content_store.put_object("../escape.txt", b"nope")

    def test_signed_url_round_trip(self, content_store):
        content_store.put_object("uploads/1/A/x.jpg", b"data")
        url = content_store.create_signed_url("uploads/1/A/x.jpg", 60)

        parsed = urlparse(url)
        assert parsed.path == "/api/v1/objects/uploads/1/A/x.jpg"
        params = parse_qs(parsed.query)
        expires = int(params["expires"][0])
        signature = params["signature"][0]
        assert content_store.verify_signature("uploads/1/A/x.jpg", expires, signature)
        assert not content_store.verify_signature("uploads/1/A/other.jpg", expires, signature)

    def test_expired_signature_rejected(self, content_store):
        content_store.put_object("uploads/1/A/x.jpg", b"data")
        expires = int(time.time()) - 1
        signature = content_store._signature("uploads/1/A/x.jpg", expires)
        assert not content_store.verify_signature("uploads/1/A/x.jpg", expires, signature)

    def test_signature_depends_on_secret(self, tmp_data, content_store):
        other = LocalContentStore(tmp_data / "objects", "another-secret", "http://testserver")
        assert other._signature("p", 1) != content_store._signature("p", 1)

    def test_signed_url_for_missing_object_raises(self, content_store):
        with pytest.raises(ContentStoreError):
            content_store.create_signed_url("uploads/9/A/missing.jpg", 60)

    def test_remove_is_idempotent(self, content_store):
        content_store.put_object("uploads/1/A/x.jpg", b"data")
        assert content_store.remove(["uploads/1/A/x.jpg", "uploads/1/A/never.jpg"]) == []
        assert not content_store.exists("uploads/1/A/x.jpg")
        assert content_store.remove(["uploads/1/A/x.jpg"]) == []

    def test_remove_reports_failures(self, content_store):
        assert content_store.remove(["../outside.txt"]) == ["../outside.txt"]


class ExplodingStore:
    def create_signed_url(self, path, expires_in):
        raise RuntimeError("storage service unavailable")


class TestSignedUrlIssuer:
    def test_issue_returns_url(self, content_store, url_issuer):
        content_store.put_object("uploads/1/A/x.jpg", b"data")
        assert url_issuer.issue("uploads/1/A/x.jpg").startswith("http://testserver/api/v1/objects/")

    def test_missing_object_masks_to_none(self, url_issuer):
        assert url_issuer.issue("uploads/1/A/missing.jpg") is None

    def test_any_store_error_masks_to_none(self):
        assert SignedUrlIssuer(ExplodingStore(), 60).issue("uploads/1/A/x.jpg") is None

    def test_empty_path_is_none(self, url_issuer):
        assert url_issuer.issue(None) is None
        assert url_issuer.issue("") is None

    def test_urls_are_fresh_per_issue(self, content_store, monkeypatch):
        content_store.put_object("uploads/1/A/x.jpg", b"data")
        issuer = SignedUrlIssuer(content_store, 60)
        first = issuer.issue("uploads/1/A/x.jpg")
        monkeypatch.setattr(time, "time", lambda: 10**10)
        assert issuer.issue("uploads/1/A/x.jpg") != first
