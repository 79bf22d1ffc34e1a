"""
Utilities package for artist-sync
Logging configuration and small helpers shared across the application
"""

from .logger import (
    get_logger,
    configure_from_settings,
    setup_logging,
    OperationLogger,
    create_operation_logger,
)
from .helpers import (
    normalize_name,
    chunked,
    unique_by,
    generate_code_verifier,
    code_challenge,
    truncate_string,
    pluralize,
)

__all__ = [
    # Logger exports
    'get_logger',
    'configure_from_settings',
    'setup_logging',
    'OperationLogger',
    'create_operation_logger',

    # Helper exports
    'normalize_name',
    'chunked',
    'unique_by',
    'generate_code_verifier',
    'code_challenge',
    'truncate_string',
    'pluralize',
]
