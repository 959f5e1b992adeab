"""
Dataset Store

In-memory, append-only collection of labeled pose samples.
"""

import json
import logging
from typing import Any, Iterable, Optional, Sequence

from ..domain.dataset import PoseLabel, FeatureVector
from ..domain.errors import InvalidCapture, EmptyExport, UnknownPoseLabel
from ..domain.pose import FEATURE_LENGTH

logger = logging.getLogger(__name__)


class DatasetStore:
    """
    Maps each pose label to the ordered samples captured for it.

    The store only grows: no sample is ever overwritten or removed.
    Lives in memory for the session; export it to keep the data.

    Usage:
        store = DatasetStore()
        store.capture(PoseLabel.TREE, vector)
        payload = store.export_json()
    """

    def __init__(
        self,
        labels: Optional[Iterable[PoseLabel]] = None,
        feature_length: int = FEATURE_LENGTH,
    ):
        """
        Args:
            labels: Labels to track, in export order (default: all PoseLabels)
            feature_length: Required length of every captured vector
        """
        self.feature_length = feature_length
        self._samples: dict[PoseLabel, list[FeatureVector]] = {
            label: [] for label in (labels if labels is not None else PoseLabel)
        }

    def _resolve(self, label: "PoseLabel | str") -> PoseLabel:
        pose = PoseLabel.parse(label)
        if pose is None or pose not in self._samples:
            raise UnknownPoseLabel(str(getattr(label, "value", label)))
        return pose

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def capture(self, label: "PoseLabel | str", vector: Sequence[float]) -> int:
        """
        Append one sample under a label.

        Args:
            label: Pose class to file the sample under
            vector: Normalized feature vector

        Returns:
            New sample count for that label

        Raises:
            UnknownPoseLabel: If the label is not tracked by this store
            InvalidCapture: If the vector length is not feature_length
        """
        pose = self._resolve(label)
        if len(vector) != self.feature_length:
            raise InvalidCapture(self.feature_length, len(vector))

        samples = self._samples[pose]
        samples.append([float(v) for v in vector])
        logger.info(f"Saved 1 sample for {pose.value}. Total: {len(samples)}")
        return len(samples)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def counts_by_label(self) -> dict[PoseLabel, int]:
        """Sample count for every tracked label, zero counts included."""
        return {label: len(samples) for label, samples in self._samples.items()}

    @property
    def total_samples(self) -> int:
        return sum(len(samples) for samples in self._samples.values())

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    def export(self) -> list[dict[str, Any]]:
        """
        Dataset as export entries.

        Only labels with at least one sample are included, in label order.
        Sample lists are copies; the store is not modified.
        """
        return [
            {"pose": label.value, "samples": [list(s) for s in samples]}
            for label, samples in self._samples.items()
            if samples
        ]

    def export_json(self) -> bytes:
        """
        Serialize the dataset to the JSON export format.

        Raises:
            EmptyExport: If no label has any samples
        """
        entries = self.export()
        if not entries:
            raise EmptyExport()
        return json.dumps(entries, indent=2).encode("utf-8")
