"""
Unit tests for the tier policy.

Tests cover:
- Free tier client and monthly invoice limits
- Pro tier bypass without counting
- Limit messages
- Calendar month boundaries
"""

from datetime import datetime

import pytest

from invoicify.errors import TierLimitError
from invoicify.models import TIER_FREE, TIER_PRO
from invoicify.tiers import TierPolicy, start_of_month


def _never_called():
    raise AssertionError('count should not be queried for unlimited tiers')


class TestTierPolicy:
    """Test cases for TierPolicy."""

    def test_free_tier_client_limit(self, policy):
        """Test the free tier allows clients up to the limit."""
        assert policy.can_add_client(TIER_FREE, lambda: 2) is True
        assert policy.can_add_client(TIER_FREE, lambda: 3) is False

    def test_free_tier_invoice_limit(self, policy):
        """Test the free tier allows ten invoices per month."""
        assert policy.can_add_invoice(TIER_FREE, lambda: 9) is True
        assert policy.can_add_invoice(TIER_FREE, lambda: 10) is False

    def test_pro_tier_is_unlimited(self, policy):
        """Test pro is allowed without querying any count."""
        assert policy.can_add_client(TIER_PRO, _never_called) is True
        assert policy.can_add_invoice(TIER_PRO, _never_called) is True
        policy.check_client(TIER_PRO, _never_called)
        policy.check_invoice(TIER_PRO, _never_called)

    def test_unknown_tier_is_limited(self, policy):
        """Test anything other than pro gets the free limits."""
        assert policy.can_add_client(None, lambda: 3) is False

    def test_client_limit_message(self, policy):
        """Test the refusal names the client limit."""
        with pytest.raises(TierLimitError) as exc_info:
            policy.check_client(TIER_FREE, lambda: 3)

        assert exc_info.value.resource == 'clients'
        assert exc_info.value.limit == 3
        assert exc_info.value.status_code == 402
        assert exc_info.value.message == 'Free tier limit: Maximum 3 clients. Upgrade to add more!'

    def test_invoice_limit_message(self, policy):
        """Test the refusal names the monthly invoice limit."""
        with pytest.raises(TierLimitError) as exc_info:
            policy.check_invoice(TIER_FREE, lambda: 10)

        assert exc_info.value.message == 'Free tier limit: Maximum 10 invoices per month. Upgrade for unlimited!'

    def test_from_config(self):
        """Test limits are read from application config."""
        policy = TierPolicy.from_config({'FREE_TIER_CLIENT_LIMIT': 5, 'FREE_TIER_INVOICES_PER_MONTH': 1})

        assert policy.max_clients == 5
        assert policy.max_invoices_per_month == 1
        assert policy.can_add_invoice(TIER_FREE, lambda: 1) is False


class TestStartOfMonth:
    """Test cases for the monthly counting window."""

    def test_start_of_month(self):
        assert start_of_month(datetime(2024, 3, 15, 13, 5, 59, 123)) == datetime(2024, 3, 1)

    def test_first_instant_of_month(self):
        assert start_of_month(datetime(2024, 1, 1)) == datetime(2024, 1, 1)
