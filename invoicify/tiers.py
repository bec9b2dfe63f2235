import datetime
import logging

from invoicify.errors import TierLimitError
from invoicify.models import TIER_PRO

logger = logging.getLogger(__name__)

DEFAULT_MAX_CLIENTS = 3
DEFAULT_MAX_INVOICES_PER_MONTH = 10


def start_of_month(now=None):
    """Local wall-clock start of the current calendar month."""
    now = now or datetime.datetime.now()
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class TierPolicy:
    """Creation limits per subscription tier. Pro is never checked."""

    def __init__(self, max_clients=DEFAULT_MAX_CLIENTS, max_invoices_per_month=DEFAULT_MAX_INVOICES_PER_MONTH):
        self.max_clients = max_clients
        self.max_invoices_per_month = max_invoices_per_month

    @classmethod
    def from_config(cls, config):
        return cls(
            max_clients=config.get('FREE_TIER_CLIENT_LIMIT', DEFAULT_MAX_CLIENTS),
            max_invoices_per_month=config.get('FREE_TIER_INVOICES_PER_MONTH', DEFAULT_MAX_INVOICES_PER_MONTH),
        )

    @staticmethod
    def is_unlimited(tier):
        return tier == TIER_PRO

    def can_add_client(self, tier, count_clients):
        """``count_clients`` is only called for limited tiers."""
        if self.is_unlimited(tier):
            return True
        return count_clients() < self.max_clients

    def can_add_invoice(self, tier, count_invoices_this_month):
        if self.is_unlimited(tier):
            return True
        return count_invoices_this_month() < self.max_invoices_per_month

    def check_client(self, tier, count_clients):
        if not self.can_add_client(tier, count_clients):
            logger.info('Client creation refused: free tier limit of %s reached', self.max_clients)
            raise TierLimitError('clients', self.max_clients)

    def check_invoice(self, tier, count_invoices_this_month):
        if not self.can_add_invoice(tier, count_invoices_this_month):
            logger.info('Invoice creation refused: free tier limit of %s per month reached',
                        self.max_invoices_per_month)
            raise TierLimitError('invoices', self.max_invoices_per_month)
