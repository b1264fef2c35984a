class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float):
        self.now += ms


def make_item(product_id=1, name="Widget", price=10, quantity=1, variant=None, image=None):
    return {
        "id": product_id,
        "name": name,
        "price": price,
        "quantity": quantity,
        "image": image,
        "variant": variant,
    }
