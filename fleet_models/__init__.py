"""Fleet Models - resource model layer for a cloud device-management API.

This package provides async operations over applications (fleets of
managed devices), their dependent resources (tags, variables, memberships,
invites) and OS image metadata (version resolution, download, config.json).
"""

from fleet_models.client import FleetClient

__version__ = "0.1.0"
__all__ = ["FleetClient", "__version__"]
