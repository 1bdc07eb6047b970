"""Import utilities for logging and loading configuration files."""

from .config import FusionConfig as FusionConfig
from .logging import configure_logging as configure_logging
from .logging import log_debug as log_debug
from .logging import console as console
from .logging import log_error as log_error
from .logging import log_info as log_info
from .logging import log_warning as log_warning
from .yaml_utils import load_yaml_data as load_yaml_data
