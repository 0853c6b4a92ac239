from typing import Dict

from pydantic import NonNegativeInt, RootModel


class SplitRegistry(RootModel[Dict[str, Dict[str, NonNegativeInt]]]):
    """
    Split name -> {variant name -> relative weight}.

    Weights need not sum to 100; the variant calculator normalizes over the
    total weight of each split.
    """

    @classmethod
    def unavailable(cls) -> "SplitRegistry":
        """Stand-in used when the registry could not be fetched."""
        return UnavailableSplitRegistry({})

    @property
    def available(self) -> bool:
        return True

    def weighting_for(self, split_name: str) -> Dict[str, int] | None:
        return self.root.get(split_name)

    def has_variant(self, split_name: str, variant: str) -> bool:
        return variant in self.root.get(split_name, {})

    def to_hash(self) -> Dict[str, Dict[str, int]]:
        return {split: dict(weights) for split, weights in self.root.items()}


class UnavailableSplitRegistry(SplitRegistry):
    @property
    def available(self) -> bool:
        return False
