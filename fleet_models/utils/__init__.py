"""Shared helpers.

This module handles:
- Reference classification (numeric id vs name/slug)
- Re-mapping of API error responses (not found, supervisor locked)
- Device OS version normalization
- Flattening of device service install expansions
"""

from fleet_models.utils.device_os_version import normalize_device_os_version
from fleet_models.utils.responses import (
    is_id,
    is_no_application_for_key_response,
    is_not_found_response,
    treat_as_missing_application,
    with_supervisor_locked_error,
)
from fleet_models.utils.service_details import (
    generate_current_service_details,
    get_current_service_details_expand,
)

__all__ = [
    "generate_current_service_details",
    "get_current_service_details_expand",
    "is_id",
    "is_no_application_for_key_response",
    "is_not_found_response",
    "normalize_device_os_version",
    "treat_as_missing_application",
    "with_supervisor_locked_error",
]
