"""Tenant-side admission policy for new instances.

Decides locally, from the list of existing instances, whether creating one
more instance of a shape is allowed. The Always Free A1 Flex allowance is
accounted by total OCPUs and memory; every other shape by instance count.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from ocilaunch.domain.models.common import TERMINATED, InstanceRecord, ShapeName, ShapeSizing

logger = logging.getLogger(__name__)

FLEX_SHAPE = ShapeName("VM.Standard.A1.Flex")
FLEX_MAX_OCPUS = 4.0
FLEX_MAX_MEMORY_IN_GBS = 24.0


@dataclass(frozen=True)
class AdmissionDecision:
    """Outcome of an admission check.

    `matching_instances` are the non-terminated instances of the requested
    shape. An empty `rejection_reason` means the request is admitted.
    """
    matching_instances: List[InstanceRecord] = field(default_factory=list)
    rejection_reason: str = ""

    @property
    def admitted(self) -> bool:
        return not self.rejection_reason


def _sizing_value(instance: InstanceRecord, key: str) -> float:
    shape_config = instance.get("shapeConfig") or {}
    value = shape_config.get(key)
    return float(value) if value is not None else 0.0


class CapacityPolicy:
    """Admission check run before every create_instance call."""

    def __init__(
        self,
        flex_max_ocpus: float = FLEX_MAX_OCPUS,
        flex_max_memory_in_gbs: float = FLEX_MAX_MEMORY_IN_GBS,
    ):
        self.flex_max_ocpus = flex_max_ocpus
        self.flex_max_memory_in_gbs = flex_max_memory_in_gbs

    @staticmethod
    def matching_instances(existing_instances: Iterable[InstanceRecord], shape: str) -> List[InstanceRecord]:
        """Instances of `shape` that still count against the tenancy."""
        return [
            instance for instance in existing_instances
            if instance.get("shape") == shape and instance.get("lifecycleState") != TERMINATED
        ]

    def check_admission(
        self,
        existing_instances: Iterable[InstanceRecord],
        shape: ShapeName,
        requested_sizing: ShapeSizing,
        max_count_for_shape: int,
        user_id: Optional[str] = None,
    ) -> AdmissionDecision:
        """Checks whether one more instance of `shape` may be created.

        Args:
            existing_instances: Instances as listed by the API.
            shape: Shape about to be launched.
            requested_sizing: OCPUs/memory of the new instance (flex shapes).
            max_count_for_shape: Instance limit for fixed shapes.
            user_id: Included in rejection reasons when given.

        Returns:
            An AdmissionDecision; `admitted` is False with a human readable
            reason when the limit would be exceeded.
        """
        matching = self.matching_instances(existing_instances, shape)

        if shape == FLEX_SHAPE:
            reason = self._check_flex_capacity(matching, requested_sizing, user_id)
        else:
            reason = self._check_instance_count(matching, max_count_for_shape, user_id)

        if reason:
            logger.info(f"Admission rejected for {shape}: {reason}")
        else:
            logger.debug(f"Admission granted for {shape} ({len(matching)} existing)")
        return AdmissionDecision(matching_instances=matching, rejection_reason=reason)

    def _check_flex_capacity(
        self,
        matching: List[InstanceRecord],
        requested: ShapeSizing,
        user_id: Optional[str],
    ) -> str:
        total_ocpus = sum(_sizing_value(i, "ocpus") for i in matching)
        total_memory = sum(_sizing_value(i, "memoryInGBs") for i in matching)

        combined_ocpus = total_ocpus + requested.ocpus
        combined_memory = total_memory + requested.memory_in_gbs

        # Reaching the limit exactly is allowed
        if combined_ocpus <= self.flex_max_ocpus and combined_memory <= self.flex_max_memory_in_gbs:
            return ""

        return (
            f"A1.Flex capacity exceeded. "
            f"Existing: {total_ocpus:.1f} OCPUs / {total_memory:.1f} GB RAM. "
            f"Requested: {requested.ocpus:.1f} OCPUs / {requested.memory_in_gbs:.1f} GB RAM. "
            f"Total: {combined_ocpus:.1f} OCPUs / {combined_memory:.1f} GB RAM "
            f"(limit {self.flex_max_ocpus:g} OCPUs / {self.flex_max_memory_in_gbs:g} GB). "
            f"User: {user_id or '-'}"
        )

    @staticmethod
    def _check_instance_count(
        matching: List[InstanceRecord],
        max_count_for_shape: int,
        user_id: Optional[str],
    ) -> str:
        if len(matching) < max_count_for_shape:
            return ""

        display_names = ", ".join(str(i.get("displayName", "")) for i in matching)
        lifecycle_states = ", ".join(str(i.get("lifecycleState", "")) for i in matching)
        return (
            f"Already have instance(s) [{display_names}] in state(s) [{lifecycle_states}]. "
            f"User: {user_id or '-'}"
        )
