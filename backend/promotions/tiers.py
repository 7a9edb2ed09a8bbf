"""
Promotion tier and duration config, plus the pure pricing helpers.

Prices are integer cents. Rank weight orders promoted products in the
marketplace: SPOTLIGHT > FEATURED > BOOST.
"""
import math

BOOST = 'BOOST'
FEATURED = 'FEATURED'
SPOTLIGHT = 'SPOTLIGHT'

PROMOTION_TIERS = {
    BOOST: {
        'key': BOOST,
        'name': 'Boost',
        'description': "Get your product mixed into the marketplace feed with a 'Sponsored' label.",
        'price_per_week_cents': 4900,
        'features': [
            'Mixed into marketplace feed',
            '"Sponsored" label on card',
            'Impression & click tracking',
        ],
        'badge_label': 'Sponsored',
        'rank_weight': 1,
    },
    FEATURED: {
        'key': FEATURED,
        'name': 'Featured',
        'description': 'Priority feed placement plus a spot in the Featured carousel.',
        'price_per_week_cents': 14900,
        'features': [
            'Everything in Boost',
            'Featured carousel placement',
            '"Featured" amber badge',
            'Higher feed priority',
        ],
        'badge_label': 'Featured',
        'rank_weight': 2,
    },
    SPOTLIGHT: {
        'key': SPOTLIGHT,
        'name': 'Spotlight',
        'description': 'Maximum visibility: top of marketplace, carousel, and a premium badge.',
        'price_per_week_cents': 39900,
        'features': [
            'Everything in Featured',
            'Top of marketplace feed',
            '"⭐ Spotlight" gradient badge',
            'Premium visual treatment',
            'Best ROI for high-value products',
        ],
        'badge_label': '⭐ Spotlight',
        'rank_weight': 3,
    },
}

TIER_CHOICES = [(key, config['name']) for key, config in PROMOTION_TIERS.items()]

PROMOTION_DURATIONS = [
    {'weeks': 1, 'label': '1 week', 'discount': 0},
    {'weeks': 2, 'label': '2 weeks', 'discount': 0.05},
    {'weeks': 4, 'label': '4 weeks', 'discount': 0.10},
]

PAYMENT_ID_PREFIX = 'promo_'


def round_half_up(value):
    return int(math.floor(value + 0.5))


def is_valid_tier(tier):
    return tier in PROMOTION_TIERS


def get_duration(weeks):
    for duration in PROMOTION_DURATIONS:
        if duration['weeks'] == weeks:
            return duration
    return None


def tier_weight(tier):
    """Rank weight of a tier; unpromoted (None or unknown) is 0"""
    config = PROMOTION_TIERS.get(tier)
    return config['rank_weight'] if config else 0


def calculate_promotion_price(tier, weeks):
    """Total price in cents; durations outside PROMOTION_DURATIONS get no discount"""
    config = PROMOTION_TIERS[tier]
    duration = get_duration(weeks)
    discount = duration['discount'] if duration else 0
    return round_half_up(config['price_per_week_cents'] * weeks * (1 - discount))


def format_price_compact(cents):
    return f"R{cents / 100:.2f}"


def get_promotion_summary(tier, weeks):
    """e.g. "Boost — 2 weeks — R93.10" """
    config = PROMOTION_TIERS[tier]
    duration = get_duration(weeks)
    label = duration['label'] if duration else f"{weeks} week(s)"
    return f"{config['name']} — {label} — {format_price_compact(calculate_promotion_price(tier, weeks))}"


def build_promotion_payment_id(shop_id, product_id, tier, weeks):
    return f"{PAYMENT_ID_PREFIX}{shop_id}_{product_id}_{tier}_{weeks}"


def parse_promotion_payment_id(payment_id):
    """
    Parse promo_<shop>_<product>_<TIER>_<weeks>.

    Returns a dict with shop_id, product_id, tier and weeks, or None for an
    invalid id.
    """
    if not payment_id or not payment_id.startswith(PAYMENT_ID_PREFIX):
        return None
    parts = payment_id.split('_')
    if len(parts) < 5:
        return None
    tier = parts[3]
    if not is_valid_tier(tier):
        return None
    try:
        weeks = int(parts[4])
    except ValueError:
        return None
    if weeks <= 0:
        return None
    return {'shop_id': parts[1], 'product_id': parts[2], 'tier': tier, 'weeks': weeks}


def tiers_payload():
    """Tier and duration config with computed prices, for the public endpoint"""
    tiers = []
    for key, config in PROMOTION_TIERS.items():
        tiers.append({
            **config,
            'prices': [
                {
                    'weeks': d['weeks'],
                    'label': d['label'],
                    'discount': d['discount'],
                    'price_cents': calculate_promotion_price(key, d['weeks']),
                    'summary': get_promotion_summary(key, d['weeks']),
                }
                for d in PROMOTION_DURATIONS
            ],
        })
    return {'tiers': tiers, 'durations': PROMOTION_DURATIONS}
