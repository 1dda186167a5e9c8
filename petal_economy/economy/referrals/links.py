from __future__ import annotations

import re

START_PAYLOAD_REFERRAL_RE = re.compile(r"^ref_([A-Za-z0-9_-]{1,64})$")


def build_referral_link(user_id: str, *, bot_username: str) -> str:
    return f"https://t.me/{bot_username.lstrip('@')}?start=ref_{user_id}"


def extract_inviter_from_start_payload(start_payload: str | None) -> str | None:
    if not start_payload:
        return None
    matched = START_PAYLOAD_REFERRAL_RE.match(start_payload.strip())
    if matched is None:
        return None
    return matched.group(1)
