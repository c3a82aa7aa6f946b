"""
Sum-tree for proportional prioritized sampling.

A complete binary tree stored flat in a single tensor:
- index 1 is the root, children of node i are 2i and 2i + 1
- logical slot i lives at leaf i + capacity
- every internal node holds the sum of its two children

Both single-element and vectorized (batch) operations are provided. The
batch variants walk the tree one level at a time for all elements at once
so sampling a training batch never loops in Python per sample.
"""

from typing import Tuple

import torch
from torch import Tensor


def _is_power_of_two(value: int) -> bool:
    return value > 0 and (value & (value - 1)) == 0


class SumTree:
    """Fixed-capacity binary indexed tree over priorities.

    O(log n) update and sample, O(1) total. The tree never resizes.

    Attributes:
        capacity: Number of leaves (power of two)
        last_index: Highest logical slot ever written. Sampling never
            returns a slot above it, so slots that were never written
            cannot be selected while the buffer is still filling up.
    """

    def __init__(self, capacity: int, device: torch.device = torch.device("cpu")):
        """Initialize an all-zero tree.

        Args:
            capacity: Number of leaves, must be a power of two
            device: Device for the storage tensor

        Raises:
            ValueError: If capacity is not a power of two
        """
        if not _is_power_of_two(capacity):
            raise ValueError(
                f"Sum tree capacity has to be a power of 2, got {capacity}"
            )

        self.capacity = capacity
        self.device = device
        self.depth = capacity.bit_length() - 1
        self.last_index = 0

        # [unused, root, internal nodes..., leaves...]
        self.tree = torch.zeros(2 * capacity, dtype=torch.float64, device=device)

    def total(self) -> float:
        """Total priority mass (root value)."""
        return self.tree[1].item()

    def value(self, index: int) -> float:
        """Priority currently stored in a logical slot."""
        self._check_index(index)
        return self.tree[index + self.capacity].item()

    def _check_index(self, index: int) -> None:
        if index < 0 or index >= self.capacity:
            raise IndexError(
                f"Sum tree index {index} out of bounds for capacity {self.capacity}"
            )

    def update(self, index: int, value: float) -> None:
        """Set the priority of one slot and refresh its ancestors.

        Args:
            index: Logical slot in [0, capacity)
            value: New priority

        Raises:
            IndexError: If index is out of range
        """
        self._check_index(index)
        self.last_index = max(self.last_index, index)

        node = index + self.capacity
        self.tree[node] = value

        while node > 1:
            node //= 2
            self.tree[node] = self.tree[2 * node] + self.tree[2 * node + 1]

    def update_batch(self, indices: Tensor, values: Tensor) -> None:
        """Set priorities for many slots at once.

        When the same slot appears more than once, the value given last
        wins, matching a sequence of single updates.

        Args:
            indices: (N,) logical slots
            values: (N,) new priorities

        Raises:
            IndexError: If any index is out of range
        """
        if indices.numel() == 0:
            return

        indices = indices.to(device=self.device, dtype=torch.long)
        values = values.to(device=self.device, dtype=torch.float64)

        low, high = indices.min().item(), indices.max().item()
        if low < 0 or high >= self.capacity:
            bad = low if low < 0 else high
            raise IndexError(
                f"Sum tree index {bad} out of bounds for capacity {self.capacity}"
            )

        # Keep only the last occurrence of each slot
        unique, inverse = torch.unique(indices, return_inverse=True)
        order = torch.arange(indices.numel(), device=self.device)
        last = torch.full((unique.numel(),), -1, dtype=torch.long, device=self.device)
        last = last.scatter_reduce(0, inverse, order, reduce="amax")

        self.tree[unique + self.capacity] = values[last]
        self.last_index = max(self.last_index, high)

        nodes = unique + self.capacity
        for _ in range(self.depth):
            nodes = torch.unique(nodes // 2)
            self.tree[nodes] = self.tree[2 * nodes] + self.tree[2 * nodes + 1]

    def sample(self, value: float) -> Tuple[int, float]:
        """Map a cumulative value to a slot.

        Args:
            value: Value in [0, total())

        Returns:
            Tuple of (slot index, priority stored in that slot)
        """
        indices, priorities = self.sample_batch(
            torch.tensor([value], dtype=torch.float64, device=self.device)
        )
        return int(indices[0].item()), priorities[0].item()

    def sample_batch(self, values: Tensor) -> Tuple[Tensor, Tensor]:
        """Vectorized root-to-leaf descent.

        At each internal node a value smaller than the left child goes
        left, otherwise the left child's mass is subtracted and the value
        goes right.

        Args:
            values: (N,) cumulative values in [0, total())

        Returns:
            Tuple of (indices (N,) long, priorities (N,) float64)
        """
        values = values.to(device=self.device, dtype=torch.float64).clone()
        nodes = torch.ones(values.shape[0], dtype=torch.long, device=self.device)

        for _ in range(self.depth):
            left = 2 * nodes
            left_values = self.tree[left]
            go_right = values >= left_values
            values = torch.where(go_right, values - left_values, values)
            nodes = torch.where(go_right, left + 1, left)

        indices = (nodes - self.capacity).clamp(max=self.last_index)
        return indices, self.tree[indices + self.capacity]
