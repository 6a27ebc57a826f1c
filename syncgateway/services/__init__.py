from .sync import SyncGateway, SyncPage

__all__ = ["SyncGateway", "SyncPage"]
