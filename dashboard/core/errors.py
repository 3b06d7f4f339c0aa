class DashboardError(Exception):
    """Base class for every error raised by the dashboard backend."""


class StorageError(DashboardError):
    """A local key-value write could not be completed."""


class StorageQuotaExceeded(StorageError):
    def __init__(self, key: str, size: int, quota: int):
        self.key = key
        self.size = size
        self.quota = quota
        super().__init__(f"Writing '{key}' needs {size} bytes, quota is {quota}")


class DocumentStoreError(DashboardError):
    """The remote document store rejected or failed an operation."""


class DocumentNotFound(DocumentStoreError):
    def __init__(self, collection: str, document_id: str):
        self.collection = collection
        self.document_id = document_id
        super().__init__(f"No document '{document_id}' in collection '{collection}'")


class UnknownCollection(DashboardError):
    def __init__(self, collection: str):
        self.collection = collection
        super().__init__(f"Unknown collection '{collection}'")
