import kaldiio
import numpy as np
import pytest
import torch

from wldatorch.src.backend.covariance_stats import CovarianceStats
from wldatorch.src.utterances.embedding_list import EmbeddingList, read_embeddings
from wldatorch.src.misc.exceptions import DimensionMismatchError, InsufficientDataError


def test_duplicate_utterance_keeps_first_vector(capsys):
    pairs = [
        ('utt1', np.array([1.0, 2.0])),
        ('utt2', np.array([0.0, 1.0])),
        ('utt1', np.array([100.0, -50.0])),
        ('utt3', np.array([2.0, 2.0])),
    ]
    utt2spk = {'utt1': 'a', 'utt2': 'a', 'utt3': 'b'}
    embedding_list, summary = read_embeddings(pairs, utt2spk)

    assert summary.num_duplicates == 1
    assert summary.num_missing_speaker == 0
    assert summary.num_done == 3
    assert summary.num_err == 1
    assert embedding_list.utt_ids == ['utt1', 'utt2', 'utt3']
    assert torch.equal(embedding_list.embeddings[0], torch.tensor([1.0, 2.0], dtype=torch.float64))

    stats = CovarianceStats(2)
    for indices in embedding_list.get_spk2indices().values():
        stats.acc_stats(embedding_list.embeddings[indices, :])
    expected = torch.tensor([[5.0, 6.0], [6.0, 9.0]], dtype=torch.float64)
    assert torch.allclose(stats.tot_covar, expected)

    out = capsys.readouterr().out
    assert 'Duplicate' in out
    assert 'Read 3 utterances, 1 with errors.' in out


def test_missing_speaker_is_skipped_and_counted():
    pairs = [('utt1', np.ones(3)), ('utt2', np.zeros(3)), ('utt3', np.ones(3))]
    embedding_list, summary = read_embeddings(pairs, {'utt1': 's1', 'utt3': 's2'})
    assert summary.num_missing_speaker == 1
    assert summary.num_err == 1
    assert len(embedding_list) == 2
    assert embedding_list.spk_ids == ['s1', 's2']


def test_nothing_read_is_fatal(capsys):
    with pytest.raises(InsufficientDataError):
        read_embeddings([('utt1', np.ones(3))], {})
    assert 'Read 0 utterances, 1 with errors.' in capsys.readouterr().out
    with pytest.raises(InsufficientDataError):
        read_embeddings([], {})


def test_dimension_mismatch_is_fatal():
    with pytest.raises(DimensionMismatchError):
        read_embeddings([('utt1', np.ones(3)), ('utt2', np.ones(4))], {'utt1': 'a', 'utt2': 'a'})


def test_unmapped_vector_does_not_fix_the_dimension():
    pairs = [('orphan', np.ones(3)), ('u1', np.array([1.0, 2.0])), ('u2', np.array([0.0, 1.0]))]
    embedding_list, summary = read_embeddings(pairs, {'u1': 'a', 'u2': 'a'})
    assert embedding_list.dim() == 2
    assert summary.num_missing_speaker == 1
    assert summary.num_done == 2


def test_duplicate_with_other_dimension_is_skipped():
    pairs = [('u1', np.array([1.0, 2.0])), ('u1', np.ones(5)), ('u2', np.array([0.0, 1.0]))]
    embedding_list, summary = read_embeddings(pairs, {'u1': 'a', 'u2': 'a'})
    assert summary.num_duplicates == 1
    assert summary.num_done == 2
    assert torch.equal(embedding_list.embeddings[0], torch.tensor([1.0, 2.0], dtype=torch.float64))


def test_speakers_are_sorted_and_utterances_keep_reading_order():
    pairs = [('u{}'.format(i), np.full(2, float(i))) for i in range(6)]
    utt2spk = {'u0': 'zed', 'u1': 'amy', 'u2': 'zed', 'u3': 'bob', 'u4': 'amy', 'u5': 'zed'}
    embedding_list, _ = read_embeddings(pairs, utt2spk)
    spk2indices = embedding_list.get_spk2indices()
    assert list(spk2indices.keys()) == ['amy', 'bob', 'zed']
    assert spk2indices['zed'] == [0, 2, 5]
    assert embedding_list.get_number_of_speakers() == 3
    assert embedding_list.dim() == 2


def test_from_kaldi(tmp_path):
    ark = str(tmp_path / 'ivectors.ark')
    with kaldiio.WriteHelper('ark:' + ark) as writer:
        writer('utt1', np.array([1.0, 0.0, 2.0], dtype=np.float32))
        writer('utt2', np.array([3.0, 1.0, 0.0], dtype=np.float32))
    utt2spk = tmp_path / 'utt2spk'
    utt2spk.write_text('utt1 spkA\nutt2 spkB\n')

    embedding_list, summary = EmbeddingList.from_kaldi('ark:' + ark, 'ark:' + str(utt2spk))
    assert summary.num_done == 2
    assert embedding_list.name == 'ark:' + ark
    assert embedding_list.spk_ids == ['spkA', 'spkB']
    assert torch.equal(embedding_list.embeddings[1], torch.tensor([3.0, 1.0, 0.0], dtype=torch.float64))
