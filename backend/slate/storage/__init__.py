from .gateway import StorageGateway
from .inmemory import InMemoryStorageGateway
from .sqlalchemy_gateway import SqlAlchemyStorageGateway

__all__ = ["InMemoryStorageGateway", "SqlAlchemyStorageGateway", "StorageGateway"]
