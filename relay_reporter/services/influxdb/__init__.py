"""InfluxDB write access"""

from .client import InfluxDBClient
from .line_protocol import FIELD_ORDER, format_metric_line

__all__ = ["InfluxDBClient", "FIELD_ORDER", "format_metric_line"]
