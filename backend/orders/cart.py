"""
Per-shop shopping cart.

`Cart` holds the line arithmetic and knows nothing about HTTP or the
database. `SessionCart` stores a Cart in the Django session, one cart per
shop under the key ``cart:<shop_slug>``.
"""
import logging

logger = logging.getLogger(__name__)

WHOLESALE = 'wholesale'
RETAIL = 'retail'
ORDER_TYPES = (WHOLESALE, RETAIL)


class CartLine:
    """A single cart line; each (variant, order type) pair is its own line"""
    FIELDS = ('variant_id', 'product_id', 'product_name', 'size', 'color',
              'option1_label', 'option2_label', 'price_in_cents', 'quantity',
              'max_stock', 'min_wholesale_qty', 'order_type')

    def __init__(self, variant_id, product_id, product_name, size, price_in_cents, max_stock,
                 color=None, option1_label='Size', option2_label='Color', quantity=1,
                 min_wholesale_qty=1, order_type=WHOLESALE):
        self.variant_id = variant_id
        self.product_id = product_id
        self.product_name = product_name
        self.size = size
        self.color = color
        self.option1_label = option1_label or 'Size'
        self.option2_label = option2_label or 'Color'
        self.price_in_cents = price_in_cents
        self.quantity = quantity
        self.max_stock = max_stock
        self.min_wholesale_qty = min_wholesale_qty or 1
        self.order_type = order_type if order_type in ORDER_TYPES else WHOLESALE

    @property
    def key(self):
        return (self.variant_id, self.order_type)

    @property
    def line_total_cents(self):
        return self.price_in_cents * self.quantity

    def to_dict(self):
        return {field: getattr(self, field) for field in self.FIELDS}

    @classmethod
    def from_dict(cls, data):
        return cls(**{field: data[field] for field in cls.FIELDS if field in data})

    def __repr__(self):
        return f"CartLine(variant={self.variant_id}, qty={self.quantity}, type={self.order_type})"


class Cart:
    def __init__(self, shop_slug, lines=None):
        self.shop_slug = shop_slug
        self.lines = list(lines or [])

    def _find(self, variant_id, order_type):
        for line in self.lines:
            if line.key == (variant_id, order_type):
                return line
        return None

    def add(self, line, quantity=1):
        """
        Add a line, or increment the existing line for the same variant and
        order type. Quantities are capped at max_stock and floored at
        min_wholesale_qty.
        """
        min_qty = line.min_wholesale_qty
        existing = self._find(line.variant_id, line.order_type)
        if existing:
            # Latest price and stock from the caller win
            existing.price_in_cents = line.price_in_cents
            existing.max_stock = line.max_stock
            new_qty = min(existing.quantity + quantity, existing.max_stock)
            existing.quantity = max(new_qty, min_qty)
            return existing

        line.quantity = min(max(quantity, min_qty), line.max_stock)
        self.lines.append(line)
        return line

    def remove(self, variant_id, order_type=WHOLESALE):
        self.lines = [line for line in self.lines if line.key != (variant_id, order_type)]

    def update_quantity(self, variant_id, quantity, order_type=WHOLESALE):
        """Set a line's quantity; dropping below the minimum removes the line"""
        line = self._find(variant_id, order_type)
        if line is None:
            return None
        if quantity < line.min_wholesale_qty:
            self.remove(variant_id, order_type)
            return None
        line.quantity = min(quantity, line.max_stock)
        return line

    def clear(self):
        self.lines = []

    def lines_for(self, order_type):
        return [line for line in self.lines if line.order_type == order_type]

    @property
    def total_items(self):
        return sum(line.quantity for line in self.lines)

    @property
    def total_price_cents(self):
        return sum(line.line_total_cents for line in self.lines)

    def is_empty(self):
        return not self.lines

    def to_list(self):
        return [line.to_dict() for line in self.lines]


class SessionCart(Cart):
    """Cart persisted in the Django session"""
    SESSION_KEY_PREFIX = 'cart:'

    def __init__(self, request, shop_slug):
        self.session = request.session
        self.session_key = f"{self.SESSION_KEY_PREFIX}{shop_slug}"
        lines = []
        for data in self.session.get(self.session_key, []):
            try:
                lines.append(CartLine.from_dict(data))
            except (KeyError, TypeError) as e:
                # Skip malformed lines left over from older sessions
                logger.warning(f"Dropping malformed cart line for {shop_slug}: {e}")
        super().__init__(shop_slug, lines)

    def save(self):
        self.session[self.session_key] = self.to_list()
        self.session.modified = True

    def clear(self):
        super().clear()
        self.session.pop(self.session_key, None)
        self.session.modified = True
