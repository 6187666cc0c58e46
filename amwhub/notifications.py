"""Signature verification and id extraction for hub content notifications"""

import hashlib
import hmac
import logging
import re
from enum import Enum
from typing import Optional, Union

from .models import Notification

logger = logging.getLogger("amwhub.notifications")

VIDEO_ID_PATTERN = re.compile(r"<yt:videoId>\s*([^<\s]+)\s*</yt:videoId>")
ENTRY_ID_PATTERN = re.compile(r"<id>\s*yt:video:([^<\s]+)\s*</id>")
CHANNEL_ID_PATTERN = re.compile(r"<yt:channelId>\s*([^<\s]+)\s*</yt:channelId>")


class SignatureCheck(Enum):
    UNCHECKED = "unchecked"
    VALID = "valid"
    INVALID = "invalid"


def _as_bytes(value: Union[str, bytes]) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value


def compute_signature(body: Union[str, bytes], secret: str) -> str:
    """Return the sha256=<hex> signature a hub sends for this body"""
    digest = hmac.new(_as_bytes(secret), _as_bytes(body), hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def verify_signature(
    body: Union[str, bytes],
    secret: Optional[str],
    signature_256: Optional[str] = None,
    legacy_signature: Optional[str] = None,
) -> SignatureCheck:
    """
    Check a notification body against the hub signature headers

    Args:
        body: Raw request body, exactly as received
        secret: Shared secret sent with the subscription, if any
        signature_256: Value of X-Hub-Signature-256
        legacy_signature: Value of X-Hub-Signature

    Returns:
        UNCHECKED when there is no secret or no signature header, otherwise
        VALID or INVALID. A legacy header is only checked when it carries a
        sha256= label; sha1 signatures cannot be verified and are INVALID.
    """
    if not secret or not (signature_256 or legacy_signature):
        return SignatureCheck.UNCHECKED

    expected = compute_signature(body, secret)

    if signature_256:
        provided = signature_256.strip()
    elif legacy_signature.strip().lower().startswith("sha256="):
        provided = legacy_signature.strip()
    else:
        logger.warning("Only an unverifiable legacy hub signature was provided")
        return SignatureCheck.INVALID

    if hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8")):
        return SignatureCheck.VALID
    return SignatureCheck.INVALID


def parse_notification(text: Union[str, bytes]) -> Notification:
    """Extract the video and channel ids from a hub Atom payload

    Matches tag shapes rather than parsing XML, so truncated or otherwise
    malformed payloads yield whatever ids are present.
    """
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")

    video_match = VIDEO_ID_PATTERN.search(text) or ENTRY_ID_PATTERN.search(text)
    channel_match = CHANNEL_ID_PATTERN.search(text)

    return Notification(
        video_id=video_match.group(1) if video_match else None,
        channel_id=channel_match.group(1) if channel_match else None,
    )
