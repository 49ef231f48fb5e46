"""
Custom Exception Classes for the Relay Reporter

Two tiers:
- Startup errors (config, connectivity) are fatal and end the process.
- Per-tick errors (fetch, parse, write) are logged and dropped.
"""


class ReporterError(Exception):
    """Base exception for all relay reporter errors"""

    def __init__(self, message: str, recoverable: bool = True):
        self.message = message
        self.recoverable = recoverable
        super().__init__(message)


class ConfigError(ReporterError):
    """Missing or invalid startup configuration"""

    def __init__(self, message: str, option: str | None = None):
        self.option = option
        super().__init__(f"Config Error: {message}", recoverable=False)


class ConnectivityError(ReporterError):
    """Startup connection test failed"""

    def __init__(self, message: str, target: str, url: str | None = None):
        self.target = target
        self.url = url
        super().__init__(f"Connectivity Error [{target}]: {message}", recoverable=False)


class RelayFetchError(ReporterError):
    """Relay status endpoint unreachable or returned a non-success status"""

    def __init__(self, message: str, url: str | None = None, status_code: int | None = None):
        self.url = url
        self.status_code = status_code
        super().__init__(f"Relay Fetch Error: {message}", recoverable=True)


class RelayStatusError(ReporterError):
    """Relay status payload does not match the expected schema"""

    def __init__(self, message: str, fields: list[str] | None = None):
        self.fields = fields or []
        super().__init__(f"Relay Status Error: {message}", recoverable=True)


class InfluxWriteError(ReporterError):
    """Write request to InfluxDB failed"""

    def __init__(self, message: str, url: str | None = None, status_code: int | None = None):
        self.url = url
        self.status_code = status_code
        super().__init__(f"InfluxDB Write Error: {message}", recoverable=True)
