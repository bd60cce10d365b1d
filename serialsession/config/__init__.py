from .settings import (
    DataBits,
    Parity,
    SerialConfig,
    SerialConfigBuilder,
    StopBits,
)
from .loader import config_from_mapping, load_config

__all__ = ["SerialConfig",
           "SerialConfigBuilder",
           "DataBits",
           "StopBits",
           "Parity",
           "load_config",
           "config_from_mapping"]
