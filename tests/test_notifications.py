"""
Unit tests for hub signature checks and notification parsing.
"""

import hashlib
import hmac

import pytest

from amwhub.notifications import (
    SignatureCheck,
    compute_signature,
    parse_notification,
    verify_signature,
)

from conftest import push_payload


def sign(body: str, secret: str) -> str:
    return "sha256=" + hmac.new(secret.encode(), body.encode(), hashlib.sha256).hexdigest()


@pytest.mark.unit
class TestVerifySignature:
    """verify_signature() gates processing on the shared secret."""

    def test_matching_signature_is_valid(self):
        body = push_payload()
        assert verify_signature(body, "s3cret", sign(body, "s3cret")) is SignatureCheck.VALID

    def test_bytes_and_text_bodies_sign_identically(self):
        body = push_payload()
        assert compute_signature(body, "k") == compute_signature(body.encode("utf-8"), "k")

    def test_mismatched_signature_is_invalid(self):
        body = push_payload()
        assert verify_signature(body, "s3cret", sign(body, "other")) is SignatureCheck.INVALID

    def test_signature_over_transformed_body_is_invalid(self):
        """Any change to the raw body before digesting breaks the signature."""
        body = push_payload()
        assert verify_signature(body.strip(), "s3cret", sign(body, "s3cret")) is SignatureCheck.INVALID

    def test_no_secret_means_unchecked(self):
        body = push_payload()
        assert verify_signature(body, "", sign(body, "s3cret")) is SignatureCheck.UNCHECKED
        assert verify_signature(body, None, "sha256=garbage") is SignatureCheck.UNCHECKED

    def test_no_header_means_unchecked(self):
        assert verify_signature(push_payload(), "s3cret") is SignatureCheck.UNCHECKED

    def test_sha1_legacy_header_fails_closed(self):
        body = push_payload()
        legacy = "sha1=" + hmac.new(b"s3cret", body.encode(), hashlib.sha1).hexdigest()
        assert verify_signature(body, "s3cret", None, legacy) is SignatureCheck.INVALID

    def test_unlabelled_legacy_header_fails_closed(self):
        assert verify_signature(push_payload(), "s3cret", None, "abcdef") is SignatureCheck.INVALID

    def test_sha256_labelled_legacy_header_is_checked(self):
        body = push_payload()
        assert verify_signature(body, "s3cret", None, sign(body, "s3cret")) is SignatureCheck.VALID
        assert verify_signature(body, "s3cret", None, sign(body, "nope")) is SignatureCheck.INVALID

    def test_256_header_takes_precedence_over_legacy(self):
        body = push_payload()
        result = verify_signature(body, "s3cret", sign(body, "s3cret"), "sha1=deadbeef")
        assert result is SignatureCheck.VALID


@pytest.mark.unit
class TestParseNotification:
    """parse_notification() pulls ids from tag shapes only."""

    def test_full_payload(self):
        notification = parse_notification(push_payload("vid1", "UC123"))
        assert notification.video_id == "vid1"
        assert notification.channel_id == "UC123"
        assert notification.is_complete

    def test_entry_id_fallback(self):
        text = "<entry><id>yt:video:abc_DEF-1</id><yt:channelId>UC9</yt:channelId></entry>"
        notification = parse_notification(text)
        assert notification.video_id == "abc_DEF-1"
        assert notification.channel_id == "UC9"

    def test_whitespace_around_values(self):
        text = "<yt:videoId>\n  vid2  \n</yt:videoId><yt:channelId> UC7 </yt:channelId>"
        notification = parse_notification(text)
        assert notification.video_id == "vid2"
        assert notification.channel_id == "UC7"

    def test_bytes_payload(self):
        notification = parse_notification(push_payload("vid3", "UC3").encode("utf-8"))
        assert notification.video_id == "vid3"

    def test_missing_ids(self):
        notification = parse_notification(push_payload(None, None))
        assert notification.video_id is None
        assert notification.channel_id is None
        assert not notification.is_complete

    def test_partial_ids(self):
        notification = parse_notification(push_payload("vid4", None))
        assert notification.video_id == "vid4"
        assert not notification.is_complete

    def test_deleted_entry_payload(self):
        """Deletion notices carry no yt:videoId element."""
        text = (
            '<feed xmlns:at="http://purl.org/atompub/tombstones/1.0">'
            '<at:deleted-entry ref="yt:video:gone" when="2026-10-16T19:00:00+00:00"/></feed>'
        )
        assert parse_notification(text).video_id is None

    def test_malformed_xml_does_not_raise(self):
        notification = parse_notification("<feed><entry><yt:videoId>vid5</yt:videoId><yt:chan")
        assert notification.video_id == "vid5"
        assert notification.channel_id is None
