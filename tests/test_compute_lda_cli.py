import kaldiio
import numpy as np
import pytest

from wldatorch.src.bin.ivector_compute_lda import main
from wldatorch.src.settings.settings import Settings


@pytest.fixture
def kaldi_inputs(tmp_path, make_grouped_data):
    data, labels = make_grouped_data(num_spk=5, utts_per_spk=4, dim=6, seed=4)
    ark = str(tmp_path / 'ivectors.ark')
    utt2spk = tmp_path / 'utt2spk'
    lines = []
    with kaldiio.WriteHelper('ark:' + ark) as writer:
        for index, (vector, spk) in enumerate(zip(data.numpy(), labels)):
            utt = '{}-utt{:03d}'.format(spk, index)
            writer(utt, vector.astype(np.float32))
            lines.append('{} {}\n'.format(utt, spk))
    utt2spk.write_text(''.join(lines))
    return 'ark:' + ark, 'ark:' + str(utt2spk)


def test_writes_binary_matrix(tmp_path, kaldi_inputs, capsys):
    ivectors, utt2spk = kaldi_inputs
    output = str(tmp_path / 'lda.mat')
    main(['--dim=3', ivectors, utt2spk, output])
    matrix = kaldiio.load_mat(output)
    assert matrix.shape == (3, 7)
    out = capsys.readouterr().out
    assert 'Read 20 utterances, 0 with errors.' in out
    assert 'Stats have 5 speakers, 20 utterances.' in out


def test_writes_text_matrix(tmp_path, kaldi_inputs):
    ivectors, utt2spk = kaldi_inputs
    output = tmp_path / 'lda.txt'
    main(['--dim', '2', '--binary=false', '--lda-variation=2', '--wlda-n=3', ivectors, utt2spk, str(output)])
    text = output.read_text()
    assert text.startswith(' [')
    assert text.rstrip().endswith(']')
    matrix = kaldiio.load_mat(str(output))
    assert matrix.shape == (2, 7)
    assert np.count_nonzero(matrix[:, -1]) == 0
    assert Settings().lda.lda_variation == 2
    assert Settings().lda.wlda_n == 3


def test_settings_file_gives_defaults(tmp_path, kaldi_inputs):
    ivectors, utt2spk = kaldi_inputs
    settings_file = tmp_path / 'init_config.py'
    settings_file.write_text('lda.lda_dim = 4\nlda.binary = False\n')
    output = tmp_path / 'lda.mat'
    main(['--settings-file', str(settings_file), ivectors, utt2spk, str(output)])
    assert output.read_text().startswith(' [')
    assert kaldiio.load_mat(str(output)).shape == (4, 7)


def test_no_utterances_read_exits_with_error(tmp_path, kaldi_inputs):
    ivectors, _ = kaldi_inputs
    utt2spk = tmp_path / 'other_utt2spk'
    utt2spk.write_text('unknown spk\n')
    with pytest.raises(SystemExit) as excinfo:
        main([ivectors, 'ark:' + str(utt2spk), str(tmp_path / 'lda.mat')])
    assert str(excinfo.value.code).startswith('ERROR: Did not read any utterances.')
    assert not (tmp_path / 'lda.mat').exists()


def test_too_large_dimension_exits_with_error(tmp_path, kaldi_inputs):
    ivectors, utt2spk = kaldi_inputs
    with pytest.raises(SystemExit) as excinfo:
        main(['--dim=7', ivectors, utt2spk, str(tmp_path / 'lda.mat')])
    assert str(excinfo.value.code).startswith('ERROR:')


def test_missing_settings_file_exits_with_error(tmp_path, kaldi_inputs):
    ivectors, utt2spk = kaldi_inputs
    with pytest.raises(SystemExit) as excinfo:
        main(['--settings-file', str(tmp_path / 'missing.py'), ivectors, utt2spk, str(tmp_path / 'lda.mat')])
    assert str(excinfo.value.code).startswith('ERROR: Cannot read settings file')
    assert not (tmp_path / 'lda.mat').exists()
