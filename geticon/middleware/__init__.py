"""GetIcon middlewares"""

from enum import Enum, unique


@unique
class ScopeKey(str, Enum):
    """Keys into the ASGI scope dict"""

    METRICS_CLIENT = "geticon_metrics_client"
