class ProductNotFoundError(LookupError):
    def __init__(self, product_id):
        super().__init__(f"Product {product_id} not found")
        self.product_id = product_id


class DataAccessError(RuntimeError):
    """Raised when the inventory database cannot answer a query."""
