class GatewayError(Exception):
    """A request the gateway refuses; rendered as ``{"error": message}``."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class StoreError(Exception):
    """Execution-time failure reported by the store, message passed through as-is."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
