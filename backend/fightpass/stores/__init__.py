from .interfaces import PurchaseStore
from .memory_store import InMemoryPurchaseStore
from .sqlalchemy_store import SqlAlchemyPurchaseStore

__all__ = ["PurchaseStore", "InMemoryPurchaseStore", "SqlAlchemyPurchaseStore"]
