import numpy as np

from dataclasses import dataclass
from typing import Optional

from srf.const import SRF_DEFAULT_OOB_RATIO


@dataclass
class _Bag:
    indices: np.ndarray
    oob_indices: np.ndarray
    rng: np.random.Generator


class BootstrapSampler:
    """
    Splits the rows of a dataset into a training subset and an out-of-bag subset, once per tree.

    Every bag owns an independent random generator spawned from a single seed sequence, so bag ``b``
    is reproducible whatever thread draws it and in whatever order the bags are drawn. The same
    generator is meant to drive all the randomness of the tree grown on that bag.
    """

    def __init__(self,
                 n_elements: int,
                 n_bags: int,
                 oob_ratio: float = SRF_DEFAULT_OOB_RATIO,
                 seed: Optional[int] = None):
        assert n_elements >= 1, "The dataset must hold at least one element"
        assert n_bags >= 1, "n_bags must be at least 1"
        assert 0.0 < oob_ratio <= 1.0, "oob_ratio must be in (0, 1]"

        self.n = n_elements
        self.n_bags = n_bags
        self.oob_ratio = oob_ratio
        self.seed = seed

        # at least one row per tree, even when n * oob_ratio rounds down to zero
        self.bag_size = max(1, int(self.n * self.oob_ratio))

        self._rngs = [np.random.default_rng(s) for s in np.random.SeedSequence(self.seed).spawn(self.n_bags)]

    def get_bag(self, bag_index: int) -> _Bag:
        """
        Draws the bag for tree ``bag_index`` by shuffling the row indices and cutting at ``bag_size``.

        Must be called at most once per bag; the returned generator continues the bag's stream.
        """
        assert 0 <= bag_index < self.n_bags, "Bag index out of range"
        rng = self._rngs[bag_index]

        shuffled = rng.permutation(self.n)
        return _Bag(indices=shuffled[:self.bag_size], oob_indices=shuffled[self.bag_size:], rng=rng)
