"""Pure ordering helpers for promoted marketplace results"""
from backend.promotions.tiers import tier_weight

PROMOTED_INTERVAL = 5


def _product_id(product):
    return product['id'] if isinstance(product, dict) else product.id


def _created_at(product):
    return product['created_at'] if isinstance(product, dict) else product.created_at


def rank_by_promotion(products, listings_by_product):
    """
    Order products by promotion tier weight, then newest first.

    Args:
        products: product objects or dicts with id and created_at
        listings_by_product: {product_id: tier or listing with .tier}

    Unpromoted products weigh 0. The sort is stable, so equal keys keep
    their incoming order.
    """
    def weight(product):
        listing = listings_by_product.get(_product_id(product))
        tier = getattr(listing, 'tier', listing)
        return tier_weight(tier)

    by_newest = sorted(products, key=_created_at, reverse=True)
    return sorted(by_newest, key=weight, reverse=True)


def interleave_promoted_products(organic, promoted):
    """
    Mix promoted products into organic results.

    Slots 4, 9, 14... are promoted while promoted items remain. Organic
    duplicates of promoted products are dropped. When organic results run
    out, the remaining promoted items fill the tail.
    """
    if not promoted:
        return list(organic)

    promoted_ids = {_product_id(p) for p in promoted}
    filtered_organic = [p for p in organic if _product_id(p) not in promoted_ids]

    result = []
    organic_idx = 0
    promoted_idx = 0
    for slot in range(len(filtered_organic) + len(promoted)):
        is_promoted_slot = (slot + 1) % PROMOTED_INTERVAL == 0 and promoted_idx < len(promoted)
        if is_promoted_slot:
            result.append(promoted[promoted_idx])
            promoted_idx += 1
        elif organic_idx < len(filtered_organic):
            result.append(filtered_organic[organic_idx])
            organic_idx += 1
        elif promoted_idx < len(promoted):
            result.append(promoted[promoted_idx])
            promoted_idx += 1
    return result
