"""Shared fixtures for the wldatorch tests."""

from typing import List, Tuple

import pytest
import torch

from wldatorch.src.misc.singleton import Singleton


@pytest.fixture(autouse=True)
def reset_settings():
    """Every test starts from the default settings."""
    Singleton.clear()
    yield
    Singleton.clear()


def _make_grouped_data(num_spk: int, utts_per_spk: int, dim: int, seed: int = 0, spread: float = 3.0) -> Tuple[torch.Tensor, List[str]]:
    generator = torch.Generator().manual_seed(seed)
    spk_means = spread * torch.randn(num_spk, dim, generator=generator, dtype=torch.float64)
    rows = []
    labels = []
    for spk in range(num_spk):
        rows.append(spk_means[spk] + torch.randn(utts_per_spk, dim, generator=generator, dtype=torch.float64))
        labels.extend(['spk{:02d}'.format(spk)] * utts_per_spk)
    return torch.cat(rows, dim=0), labels


@pytest.fixture
def make_grouped_data():
    """Factory returning (data, speaker_labels) with speakers as shifted Gaussian clusters."""
    return _make_grouped_data


@pytest.fixture
def grouped_data():
    return _make_grouped_data(num_spk=6, utts_per_spk=5, dim=4, seed=1)
