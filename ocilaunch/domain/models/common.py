"""Defines common Value Objects used across different domain contexts.

These objects represent simple values or concepts like OCIDs, shapes,
regions and the JSON records returned by the compute control plane.
"""

from dataclasses import dataclass
from typing import NewType, Optional, TypedDict

# === Core Value Objects ===

# Using NewType for semantic clarity, although they are strings at runtime.
Ocid = NewType("Ocid", str)                  # Oracle Cloud ID (tenancy, user, subnet, image...)
Region = NewType("Region", str)              # e.g. 'eu-frankfurt-1'
ShapeName = NewType("ShapeName", str)        # e.g. 'VM.Standard.A1.Flex'
KeyFingerprint = NewType("KeyFingerprint", str)  # API signing key fingerprint (aa:bb:...)
LifecycleState = NewType("LifecycleState", str)  # PROVISIONING, RUNNING, STOPPED, TERMINATED...

# === Caching Context ===
CacheKey = NewType("CacheKey", str)          # Unique key for a cache entry

# === HTTP Context ===
HttpMethod = NewType("HttpMethod", str)      # 'GET', 'POST', ...

TERMINATED = LifecycleState("TERMINATED")


@dataclass(frozen=True)
class Identity:
    """Who is signing the request.

    Supplied by configuration and immutable for the lifetime of a client.
    """
    tenancy_id: Ocid
    user_id: Ocid
    key_fingerprint: KeyFingerprint
    private_key_path: str
    region: Region
    private_key_passphrase: Optional[str] = None

    @property
    def key_id(self) -> str:
        """The keyId value of the Authorization header."""
        return f"{self.tenancy_id}/{self.user_id}/{self.key_fingerprint}"


@dataclass(frozen=True)
class ShapeSizing:
    """OCPU and memory sizing. Only meaningful for flexible shapes."""
    ocpus: float
    memory_in_gbs: float


# --- Remote JSON records (read-only to this client) ---

class ShapeConfig(TypedDict, total=False):
    """The `shapeConfig` sub-object of an instance."""
    ocpus: float
    memoryInGBs: float


class InstanceRecord(TypedDict, total=False):
    """An instance as returned by the compute API (subset of fields)."""
    id: Ocid
    shape: ShapeName
    lifecycleState: LifecycleState
    displayName: str
    availabilityDomain: str
    shapeConfig: Optional[ShapeConfig]


class AvailabilityDomain(TypedDict, total=False):
    """An availability domain as returned by the identity API."""
    id: Ocid
    name: str
    compartmentId: Ocid

