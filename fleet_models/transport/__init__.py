"""Transport module.

This module handles:
- Authenticated HTTP requests and error mapping (RequestSender)
- OData query compilation and option merging
- Query-and-mutate access to resource collections (PineClient)
- Image maker service requests and streaming downloads
"""

from fleet_models.transport.image_maker import ImageMakerClient
from fleet_models.transport.odata import (
    compile_filter,
    compile_options,
    merge_options,
)
from fleet_models.transport.pine import PineClient
from fleet_models.transport.request import ApiResponse, RequestSender

__all__ = [
    "ApiResponse",
    "ImageMakerClient",
    "PineClient",
    "RequestSender",
    "compile_filter",
    "compile_options",
    "merge_options",
]
