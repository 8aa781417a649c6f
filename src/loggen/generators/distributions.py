"""
Sampling distributions for fabricated field values.

Each distribution draws from its own random.Random so a generator can be
seeded for reproducible output.
"""

import math
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class Distribution(ABC):
    """Base class for distributions."""

    rng: random.Random = field(default_factory=random.Random, repr=False, compare=False)

    @abstractmethod
    def sample(self) -> Any:
        """Draw a single sample."""
        pass

    def sample_bounded(self, min_val: float | None = None, max_val: float | None = None) -> float:
        """Draw a sample clamped to optional bounds."""
        value = self.sample()
        if min_val is not None:
            value = max(min_val, value)
        if max_val is not None:
            value = min(max_val, value)
        return value


@dataclass
class NormalDistribution(Distribution):
    """Gaussian; gauge-style values wandering around a mean."""

    mean: float = 0.0
    stddev: float = 1.0

    def sample(self) -> float:
        return self.rng.gauss(self.mean, self.stddev)


@dataclass
class LogNormalDistribution(Distribution):
    """
    Log-normal distribution, a good fit for request latencies.

    Parameters:
        median: the 50th percentile
        sigma: spread; 0.5 is tight, 1.5 gives a heavy tail
    """

    median: float = 100.0
    sigma: float = 0.8

    def sample(self) -> float:
        return self.rng.lognormvariate(math.log(self.median), self.sigma)


@dataclass
class CategoricalDistribution(Distribution):
    """
    Weighted choice between discrete values.

    Example:
        levels = CategoricalDistribution(
            categories=["info", "warn", "error"],
            weights=[0.8, 0.15, 0.05],
        )
    """

    categories: list[Any] = field(default_factory=list)
    weights: list[float] = field(default_factory=list)

    def __post_init__(self):
        if not self.weights and self.categories:
            self.weights = [1.0] * len(self.categories)
        if len(self.weights) != len(self.categories):
            raise ValueError("CategoricalDistribution needs one weight per category")
        total = sum(self.weights)
        if total > 0:
            self.weights = [w / total for w in self.weights]

    def sample(self) -> Any:
        if not self.categories:
            raise ValueError("CategoricalDistribution requires at least one category")
        return self.rng.choices(self.categories, weights=self.weights)[0]
