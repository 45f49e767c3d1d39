"""Interface for the OCI configuration consumed by the API client.

Defines the read-only view the client needs: identity, region, networking
and boot source, plus the sizing requested for flexible shapes.
"""

import abc
from typing import Any, Dict

from ocilaunch.domain.models.common import Identity, Ocid, Region, ShapeSizing


class OciConfigProvider(abc.ABC):
    """Abstract Base Class for OCI account configuration."""

    tenancy_id: Ocid
    user_id: Ocid
    region: Region
    subnet_id: Ocid

    @property
    @abc.abstractmethod
    def identity(self) -> Identity:
        """The signing identity (tenancy, user, fingerprint, key)."""
        pass

    @property
    @abc.abstractmethod
    def shape_sizing(self) -> ShapeSizing:
        """OCPUs and memory requested for a flexible shape."""
        pass

    @abc.abstractmethod
    def get_source_details(self) -> Dict[str, Any]:
        """Returns the `sourceDetails` fragment of the launch payload."""
        pass
