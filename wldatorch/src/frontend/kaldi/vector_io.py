# Copyright 2020 Ville Vestman
# This file is licensed under the MIT license (see LICENSE.txt).

from typing import Dict, Iterator, Tuple

import kaldiio
import numpy as np

from wldatorch.src.misc.exceptions import ConfigurationError

_TABLE_PREFIXES = ('ark,t:', 'ark:')


def read_vectors(rspecifier: str) -> Iterator[Tuple[str, np.ndarray]]:
    """Iterates over (utterance id, vector) pairs of a Kaldi table (e.g. "ark:ivectors.ark" or "scp:ivector.scp")."""
    with kaldiio.ReadHelper(rspecifier) as reader:
        for utt_id, vector in reader:
            yield utt_id, vector


def read_utt2spk(rxfilename: str) -> Dict[str, str]:
    for prefix in _TABLE_PREFIXES:
        if rxfilename.startswith(prefix):
            rxfilename = rxfilename[len(prefix):]
            break
    utt2spk = {}
    with open(rxfilename) as f:
        for line in f:
            parts = line.split()
            if not parts:
                continue
            if len(parts) != 2:
                raise ConfigurationError('Malformed line in {} (expected "<utt> <spk>"): {}'.format(rxfilename, line.strip()))
            utt2spk[parts[0]] = parts[1]
    return utt2spk


def write_matrix(filename: str, matrix: np.ndarray, binary: bool = True):
    matrix = np.asarray(matrix, dtype=np.float32)
    if binary:
        kaldiio.save_mat(filename, matrix)
        return
    with open(filename, 'w') as f:
        f.write(' [')
        for row in matrix:
            f.write('\n  ')
            f.write(' '.join('{:.9g}'.format(x) for x in row))
            f.write(' ')
        f.write(']\n')


def read_matrix(filename: str) -> np.ndarray:
    return np.asarray(kaldiio.load_mat(filename), dtype=np.float32)
