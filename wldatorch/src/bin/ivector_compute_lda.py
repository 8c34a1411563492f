# Copyright 2020 Ville Vestman
# This file is licensed under the MIT license (see LICENSE.txt).

# Command line tool for computing an LDA (or WLDA) transform from iVectors:
# ivector-compute-lda [options] <ivector-rspecifier> <utt2spk-rspecifier> <lda-matrix-out>

import argparse
import sys
from typing import List, Optional

from wldatorch.src.settings.settings import Settings
from wldatorch.src.utterances.embedding_list import EmbeddingList
from wldatorch.src.backend.lda import Lda
from wldatorch.src.misc.exceptions import LdaError

USAGE = '''Computes an LDA (or weighted LDA) transform from iVectors grouped by speaker.
The output is a (dim x (ivector_dim + 1)) matrix [A b], an affine transform
y = A x + b. By default the projected within-speaker covariance is the identity;
with --total-covariance-factor > 0 an interpolation of the total and the
within-speaker covariance is whitened instead. For standard LDA the offset b
moves the global mean to zero.

e.g.:  ivector-compute-lda --dim=50 ark:ivectors.ark ark:utt2spk lda.mat'''


def _str2bool(value: str) -> bool:
    if value.lower() in ('true', 't', '1', 'yes'):
        return True
    if value.lower() in ('false', 'f', '0', 'no'):
        return False
    raise argparse.ArgumentTypeError('Boolean value expected, got {}'.format(value))


def _build_parser() -> argparse.ArgumentParser:
    defaults = Settings().lda
    parser = argparse.ArgumentParser(prog='ivector-compute-lda', description=USAGE, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument('ivector_rspecifier', help='iVectors, e.g. ark:ivectors.ark or scp:ivector.scp')
    parser.add_argument('utt2spk_rspecifier', help='utt2spk table, e.g. ark:data/train/utt2spk')
    parser.add_argument('lda_matrix_out', help='output file for the LDA matrix')
    parser.add_argument('--dim', type=int, default=defaults.lda_dim, help='Output dimension of the transform')
    parser.add_argument('--total-covariance-factor', type=float, default=defaults.total_covariance_factor,
                        help='Weight of the total covariance in the whitened matrix (0.0 = within-class only, '
                             '1.0 = total only). Ignored by weighted LDA.')
    parser.add_argument('--covariance-floor', type=float, default=defaults.covariance_floor,
                        help='Eigenvalues of the whitened matrix are floored to this fraction '
                             'of its largest eigenvalue.')
    parser.add_argument('--binary', type=_str2bool, default=defaults.binary, help='Write output in binary mode')
    parser.add_argument('--lda-variation', type=int, default=defaults.lda_variation,
                        help='-1 = test case (random matrix), 0 = standard LDA, 1 = WLDA with Euclidean distance weighting, '
                             '2 = WLDA with Mahalanobis distance weighting')
    parser.add_argument('--wlda-n', type=int, default=defaults.wlda_n, help='Exponent n of the WLDA weighting function (0 means 4)')
    parser.add_argument('--settings-file', default=None, help='Settings file applied before the command line options')
    return parser


def main(argv: Optional[List[str]] = None):
    argv = sys.argv[1:] if argv is None else argv

    # Settings file (if any) has to be applied before the parser reads the defaults.
    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument('--settings-file', default=None)
    known_args, _ = pre_parser.parse_known_args(argv)

    try:
        Settings(known_args.settings_file)
        args = _build_parser().parse_args(argv)

        Settings().lda.lda_dim = args.dim
        Settings().lda.total_covariance_factor = args.total_covariance_factor
        Settings().lda.covariance_floor = args.covariance_floor
        Settings().lda.binary = args.binary
        Settings().lda.lda_variation = args.lda_variation
        Settings().lda.wlda_n = args.wlda_n

        embedding_list, _ = EmbeddingList.from_kaldi(args.ivector_rspecifier, args.utt2spk_rspecifier)
        lda = Lda.train(embedding_list.embeddings, embedding_list.get_spk_labels(), Settings().lda.lda_dim, Settings().computing.device)
        lda.save(args.lda_matrix_out, Settings().lda.binary)
    except LdaError as e:
        sys.exit('ERROR: {}'.format(e))

    print('Wrote LDA transform to {}'.format(args.lda_matrix_out))


if __name__ == '__main__':
    main()
