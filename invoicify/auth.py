import logging
from collections import namedtuple

from flask import current_app, request

from invoicify.models import db, Profile, TIER_FREE, TIER_PRO
from invoicify.store import SettingsStore

logger = logging.getLogger(__name__)

CurrentUser = namedtuple('CurrentUser', ['id', 'email', 'tier'])


def to_current_user(profile):
    return CurrentUser(profile.id, profile.email, profile.subscription_tier)


def user_for_token(token):
    if not token:
        return None
    profile = Profile.query.filter_by(api_token=token).first()
    if profile is None:
        logger.info('Rejected unknown API token')
        return None
    return to_current_user(profile)


def current_user():
    """Identity for the current request, or None without a valid session."""
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer':
        return None
    return user_for_token(token.strip())


def provision_user(email, full_name=None, company_name=None, tier=TIER_FREE):
    """Create a profile together with its settings row."""
    profile = Profile(email=email, full_name=full_name, company_name=company_name, subscription_tier=tier)
    db.session.add(profile)
    db.session.flush()

    # Commits the profile together with its settings row
    SettingsStore(to_current_user(profile)).create({
        'company_name': company_name or 'My Company',
        'company_email': email,
        'company_address': '',
        'default_tax_rate': current_app.config.get('DEFAULT_TAX_RATE', 20),
        'currency_symbol': current_app.config.get('DEFAULT_CURRENCY', '$'),
    })
    logger.info('Provisioned user %s (%s tier)', email, tier)
    return profile


def set_tier(email, tier):
    if tier not in (TIER_FREE, TIER_PRO):
        raise ValueError(f'Unknown tier: {tier}')
    profile = Profile.query.filter_by(email=email).first()
    if profile is None:
        return None
    profile.subscription_tier = tier
    db.session.commit()
    return profile
