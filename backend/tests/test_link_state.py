"""Tests for link state derivation and share token generation."""
import re
from datetime import datetime, timedelta

import pytest

from slate.domain.types import LinkState
from slate.sharing.link_state import compute_link_state, generate_share_token

NOW = datetime(2026, 3, 1, 9, 30)
URL_SAFE = re.compile(r"^[A-Za-z0-9_-]+$")


class TestComputeLinkState:
    def test_plain_link_is_active(self):
        assert compute_link_state(True, None, None, 0, NOW) is LinkState.ACTIVE

    def test_expiry_equal_to_now_is_still_active(self):
        assert compute_link_state(True, NOW, None, 0, NOW) is LinkState.ACTIVE

    def test_one_microsecond_past_expiry_is_expired(self):
        assert compute_link_state(True, NOW, None, 0, NOW + timedelta(microseconds=1)) is LinkState.EXPIRED

    def test_view_limit_boundary(self):
        assert compute_link_state(True, None, 3, 2, NOW) is LinkState.ACTIVE
        assert compute_link_state(True, None, 3, 3, NOW) is LinkState.VIEW_LIMIT_EXCEEDED

    def test_revoked_takes_priority(self):
        state = compute_link_state(False, NOW - timedelta(days=1), 1, 1, NOW)
        assert state is LinkState.REVOKED

    def test_expired_before_view_limit(self):
        state = compute_link_state(True, NOW - timedelta(seconds=1), 1, 1, NOW)
        assert state is LinkState.EXPIRED

    @pytest.mark.parametrize("views", [0, 10, 10_000])
    def test_unlimited_views(self, views):
        assert compute_link_state(True, None, None, views, NOW) is LinkState.ACTIVE


class TestShareToken:
    def test_token_shape(self):
        token = generate_share_token()
        assert len(token) == 43
        assert URL_SAFE.match(token)

    def test_tokens_do_not_repeat(self):
        tokens = {generate_share_token() for _ in range(10_000)}
        assert len(tokens) == 10_000
