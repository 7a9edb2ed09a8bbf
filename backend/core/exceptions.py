"""
Domain errors raised by services and translated to HTTP responses by views.
"""


class TradeFeedError(Exception):
    """Base class for domain errors"""
    default_message = 'Request could not be completed.'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InsufficientStockError(TradeFeedError):
    """One or more variants cannot cover the requested quantity"""
    default_message = 'Some items are out of stock.'

    def __init__(self, errors, message=None):
        self.errors = list(errors)
        if message is None and self.errors:
            message = 'Some items are out of stock: ' + '; '.join(
                f"{e['product_name']}: only {e['available']} left (you requested {e['requested']})"
                for e in self.errors
            )
        super().__init__(message)


class InvalidStatusTransition(TradeFeedError):
    default_message = 'Invalid order status change.'

    def __init__(self, current, requested):
        self.current = current
        self.requested = requested
        super().__init__(f'Cannot change from {current} to {requested}.')


class PromotionError(TradeFeedError):
    default_message = 'Promotion could not be created.'


class ProductLimitReached(TradeFeedError):
    default_message = 'Product limit reached for your plan.'

    def __init__(self, limit, message=None):
        self.limit = limit
        super().__init__(message or f'Your plan allows {limit} active products. Upgrade to add more.')


class UpgradeRequestError(TradeFeedError):
    default_message = 'Upgrade request could not be processed.'
