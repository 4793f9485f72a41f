# gift_checkout_api/app/api/routes/__init__.py

from .checkout import router as checkout_router


__all__ = [
    "checkout_router",
]
