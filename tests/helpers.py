"""
Test data builders.
"""

import secrets


def sqlite_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'oauthdb.sqlite'}"


def make_client(**overrides):
    """Client descriptor with hex identifiers, as callers pass it."""
    data = {
        "id": secrets.token_hex(8),
        "name": "Test Client",
        "hashed_secret": secrets.token_hex(32),
        "image_uri": "https://example.com/logo.png",
        "redirect_uri": "https://example.com/callback",
        "trusted": False,
    }
    data.update(overrides)
    return data


def make_user_id() -> str:
    return secrets.token_hex(16)
