"""Deterministic variant calculation.

The bucket for a (visitor, split) pair is derived from an MD5 digest of
``split_name + visitor_id``: the first 8 hex digits, read as an integer,
modulo 100. Any client that follows the same rule puts the same visitor in
the same bucket, so local assignments can be verified by the server.
"""

import hashlib
from typing import Mapping

from splitsync.core.exceptions import SplitConfigurationError

BUCKET_COUNT = 100


def assignment_bucket(visitor_id: str, split_name: str) -> int:
    """Stable bucket in [0, 100) for this visitor and split."""
    seed = f"{split_name}{visitor_id}"
    digest = hashlib.md5(seed.encode("utf-8")).hexdigest()
    return int(digest[:8], 16) % BUCKET_COUNT


class VariantCalculator:
    def __init__(self, visitor_id: str, split_name: str, weighting: Mapping[str, int] | None):
        self.visitor_id = visitor_id
        self.split_name = split_name
        self.weighting = weighting

    @property
    def bucket(self) -> int:
        return assignment_bucket(self.visitor_id, self.split_name)

    def variant(self) -> str:
        """
        Selects the variant whose cumulative weight range contains the bucket.

        Variants are walked in name order; each range is the variant's weight
        normalized over the split's total weight, so weights need not add up
        to 100.
        """
        if self.weighting is None:
            raise SplitConfigurationError(f"Unknown split: {self.split_name}")

        total_weight = sum(self.weighting.values())
        if total_weight <= 0:
            raise SplitConfigurationError(
                f"Split {self.split_name} has no allocated weight; cannot pick a variant."
            )

        bucket = self.bucket
        cumulative_weight = 0
        for variant in sorted(self.weighting):
            cumulative_weight += self.weighting[variant]
            # bucket / 100 < cumulative / total, kept in integers
            if bucket * total_weight < cumulative_weight * BUCKET_COUNT:
                return variant

        # Unreachable: the last ceiling is exactly 100
        raise SplitConfigurationError(f"No variant found for split {self.split_name}")
