# Copyright 2020 Ville Vestman
# This file is licensed under the MIT license (see LICENSE.txt).

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple, Union

import numpy as np
import torch

from wldatorch.src.frontend.kaldi import vector_io
from wldatorch.src.misc.exceptions import DimensionMismatchError, InsufficientDataError
from wldatorch.src.misc.miscutils import get_label2indices


@dataclass
class ReadSummary:
    num_done: int = 0
    num_duplicates: int = 0
    num_missing_speaker: int = 0

    @property
    def num_err(self) -> int:
        return self.num_duplicates + self.num_missing_speaker


@dataclass
class EmbeddingList:
    embeddings: torch.Tensor
    utt_ids: List[str] = field(default_factory=list)
    spk_ids: List[Union[str, int]] = field(default_factory=list)
    name: str = ''

    def __len__(self):
        return len(self.utt_ids)

    def dim(self) -> int:
        return self.embeddings.size()[1]

    def get_spk_labels(self) -> Union[List[str], List[int]]:
        return list(self.spk_ids)

    def get_number_of_speakers(self) -> int:
        return len(set(self.spk_ids))

    def get_spk2indices(self) -> Dict[Union[str, int], List[int]]:
        """Row indices of each speaker. Speakers are in sorted order, utterances in reading order."""
        return get_label2indices(self.spk_ids)

    @classmethod
    def from_kaldi(cls, ivector_rspecifier: str, utt2spk_rspecifier: str) -> Tuple[EmbeddingList, ReadSummary]:
        utt2spk = vector_io.read_utt2spk(utt2spk_rspecifier)
        embedding_list, summary = read_embeddings(vector_io.read_vectors(ivector_rspecifier), utt2spk)
        embedding_list.name = ivector_rspecifier
        return embedding_list, summary


def read_embeddings(pairs: Iterable[Tuple[str, np.ndarray]], utt2spk) -> Tuple[EmbeddingList, ReadSummary]:
    """Collects (utterance id, vector) pairs into an EmbeddingList.

    Utterances without a speaker in utt2spk and repeated utterance ids are skipped (first occurrence is kept).

    Arguments:
        pairs {Iterable[Tuple[str, np.ndarray]]} -- Utterance ids and vectors.
        utt2spk -- Any mapping that supports get(utt_id).

    Returns:
        EmbeddingList -- Vectors that were read (float64 tensor).
        ReadSummary -- Counts of read and skipped utterances.
    """
    summary = ReadSummary()
    seen = set()
    vectors = []
    utt_ids = []
    spk_ids = []
    dim = None
    for utt_id, vector in pairs:
        if utt_id in seen:
            print('[WARNING] Duplicate iVector found for utterance {}, ignoring it.'.format(utt_id))
            summary.num_duplicates += 1
            continue
        spk_id = utt2spk.get(utt_id)
        if spk_id is None:
            print('[WARNING] No speaker given for utterance {}'.format(utt_id))
            summary.num_missing_speaker += 1
            continue
        vector = np.asarray(vector, dtype=np.float64).ravel()
        if dim is None:
            dim = vector.size
        elif vector.size != dim:
            raise DimensionMismatchError('Vector of utterance {} has dimension {}, expected {}'.format(utt_id, vector.size, dim))
        seen.add(utt_id)
        vectors.append(vector)
        utt_ids.append(utt_id)
        spk_ids.append(spk_id)
        summary.num_done += 1

    print('Read {} utterances, {} with errors.'.format(summary.num_done, summary.num_err))

    if summary.num_done == 0:
        raise InsufficientDataError('Did not read any utterances.')

    embeddings = torch.from_numpy(np.stack(vectors))
    return EmbeddingList(embeddings, utt_ids, spk_ids), summary
