# Copyright 2020 Ville Vestman
# This file is licensed under the MIT license (see LICENSE.txt).

from collections import OrderedDict
from typing import Dict, List, Union

import torch

def test_finiteness(tensor: torch.Tensor, description: str) -> bool:
    if (~torch.isfinite(tensor)).sum() > 0:
        print('{}: NOT FINITE!'.format(description))
        return False
    return True

def format_vector(vector: torch.Tensor, max_values: int = 20) -> str:
    """Formats a vector Kaldi-style, e.g. "[ 1.5 0.25 ]", eliding the middle of long vectors."""
    values = vector.tolist()
    if len(values) > max_values:
        half = max_values // 2
        parts = ['{:g}'.format(x) for x in values[:half]] + ['...'] + ['{:g}'.format(x) for x in values[-half:]]
    else:
        parts = ['{:g}'.format(x) for x in values]
    return '[ {} ]'.format(' '.join(parts))

def get_label2indices(labels: List[Union[str, int]]) -> Dict[Union[str, int], List[int]]:
    """Row indices of each label. Labels are in sorted order, indices in the original order."""
    index_dict = {}
    for index, label in enumerate(labels):
        index_dict.setdefault(label, []).append(index)
    return OrderedDict((label, index_dict[label]) for label in sorted(index_dict))
