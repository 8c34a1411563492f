# Copyright 2020 Ville Vestman
# This file is licensed under the MIT license (see LICENSE.txt).

from typing import Dict, List, Tuple, Union

import torch

from wldatorch.src.backend.covariance_stats import CovarianceStats, LDA_TEST, LDA_STANDARD, WLDA_EUCLIDEAN, WLDA_MAHALANOBIS
from wldatorch.src.frontend.kaldi import vector_io
from wldatorch.src.misc.exceptions import ConfigurationError, DimensionMismatchError, InsufficientDataError, SingularMatrixError
from wldatorch.src.misc.miscutils import format_vector, get_label2indices
from wldatorch.src.settings.settings import Settings

_DEFAULT_WLDA_N = 4


class Lda:
    """Affine LDA transform y = A x + b stored as a single (lda_dim x (dim + 1)) matrix [A b]."""

    def __init__(self, matrix: torch.Tensor):
        self.matrix = matrix

    @property
    def lda_dim(self) -> int:
        return self.matrix.size()[0]

    @property
    def linear_part(self) -> torch.Tensor:
        return self.matrix[:, :-1]

    @property
    def offset(self) -> torch.Tensor:
        return self.matrix[:, -1]

    @classmethod
    def train(cls, data: torch.Tensor, speaker_labels: List[Union[str, int]], lda_dim: int, device=torch.device('cpu')):
        """Trains an LDA (or weighted LDA) transform using the options in Settings().lda.

        Arguments:
            data {torch.Tensor} -- Vectors as rows (not modified).
            speaker_labels {List[Union[str, int]]} -- Speaker label of each row.
            lda_dim {int} -- Output dimension (1 <= lda_dim <= data dimension).
            device -- Device used for the computations.

        Returns:
            Lda -- Trained transform.
        """
        if data.dim() != 2 or data.size()[0] == 0:
            raise InsufficientDataError('Did not read any utterances.')
        if data.size()[0] != len(speaker_labels):
            raise DimensionMismatchError('Got {} vectors but {} speaker labels'.format(data.size()[0], len(speaker_labels)))
        dim = data.size()[1]
        _check_lda_dim(lda_dim, dim)

        lda_variation, total_covariance_factor, wlda_n = resolve_lda_options(
            Settings().lda.lda_variation, Settings().lda.total_covariance_factor, Settings().lda.wlda_n)

        if lda_variation == LDA_TEST:
            return Lda(_test_transform(lda_dim, dim, wlda_n, Settings().lda.test_seed))

        print('Training LDA...')
        data = data.to(device=device, dtype=torch.float64).clone()
        mean = torch.zeros(dim, dtype=torch.float64, device=device)
        if lda_variation == LDA_STANDARD:
            mean = compute_and_subtract_mean(data)
        # Weighted variants are computed on uncentered vectors (speaker means are subtracted in the scatter terms).
        print('2-norm of iVector mean is {:g}'.format(mean.norm().item()))

        linear_part = compute_lda_transform(data, get_label2indices(speaker_labels), lda_dim, total_covariance_factor,
                                            Settings().lda.covariance_floor, lda_variation, wlda_n)
        offset = -torch.mv(linear_part, mean)
        print('2-norm of transformed iVector mean is {:g}'.format(offset.norm().item()))
        matrix = torch.cat((linear_part, offset.unsqueeze(1)), dim=1)
        print('LDA trained!...')
        return Lda(matrix.float())

    def transform(self, vectors: torch.Tensor) -> torch.Tensor:
        vectors = vectors.to(device=self.matrix.device, dtype=self.matrix.dtype)
        return torch.matmul(vectors, self.linear_part.t()) + self.offset

    def save(self, filename: str, binary: bool = True):
        print('Saving LDA transform to file {}'.format(filename))
        vector_io.write_matrix(filename, self.matrix.cpu().numpy(), binary)

    @classmethod
    def load(cls, filename: str, device=torch.device('cpu')):
        print('Loading LDA transform from file {}'.format(filename))
        return Lda(torch.from_numpy(vector_io.read_matrix(filename)).to(device))


def resolve_lda_options(lda_variation: int, total_covariance_factor: float, wlda_n: int) -> Tuple[int, float, int]:
    if lda_variation > WLDA_MAHALANOBIS:
        print('[WARNING] Invalid LDA variant {} chosen, using standard LDA.'.format(lda_variation))
        lda_variation = LDA_STANDARD
    elif lda_variation < LDA_STANDARD:
        lda_variation = LDA_TEST
    if wlda_n == 0:
        wlda_n = _DEFAULT_WLDA_N
    if lda_variation > LDA_STANDARD and total_covariance_factor != 0:
        # Weighted LDA always normalizes the weighted within-class covariance.
        print('[WARNING] total-covariance-factor forced to 0.0 for weighted LDA.')
        total_covariance_factor = 0.0
    return lda_variation, total_covariance_factor, wlda_n


def compute_normalizing_transform(covar: torch.Tensor, floor: float) -> Tuple[torch.Tensor, int]:
    """Returns a projection T such that T * covar * T^T = I (exactly if no eigenvalues were floored).

    Arguments:
        covar {torch.Tensor} -- Symmetric matrix.
        floor {float} -- Eigenvalues are floored to floor * (largest eigenvalue), 0 <= floor < 1.

    Returns:
        torch.Tensor -- The projection T.
        int -- Number of floored eigenvalues.
    """
    if not 0 <= floor < 1:
        raise ConfigurationError('Covariance floor should be in [0, 1), got {}'.format(floor))
    l, U = torch.linalg.eigh(covar)  # ascending
    l = l.flip(0)
    U = U.flip(1)
    floor = floor * l[0].item()
    num_floored = torch.sum(l < floor).item()
    l = torch.clamp(l, min=floor)
    if num_floored > 0:
        print('[WARNING] Floored {} eigenvalues of covariance to {:g}'.format(num_floored, floor))
    if l[-1].item() <= 0:
        raise SingularMatrixError('Cannot normalize a matrix with non-positive eigenvalues (largest = {:g}, smallest after flooring = {:g})'.format(l[0].item(), l[-1].item()))
    T = torch.rsqrt(l).unsqueeze(1) * U.t()
    return T, num_floored


def compute_and_subtract_mean(data: torch.Tensor) -> torch.Tensor:
    mean = data.mean(dim=0)
    data -= mean
    return mean


def compute_lda_transform(data: torch.Tensor, spk2indices: Dict[Union[str, int], List[int]], lda_dim: int, total_covariance_factor: float,
                          covariance_floor: float, lda_variation: int, wlda_n: int) -> torch.Tensor:
    """Computes the linear part (lda_dim x dim) of the (W)LDA transform.

    Arguments:
        data {torch.Tensor} -- Vectors as rows.
        spk2indices {Dict[Union[str, int], List[int]]} -- Row indices of each speaker; the iteration order of the dict fixes the pair order of WLDA.
        lda_dim {int} -- Number of kept dimensions.
        total_covariance_factor {float} -- Weight of the total covariance in the normalized matrix (standard LDA).
        covariance_floor {float} -- Relative eigenvalue floor of the normalized matrix.
        lda_variation {int} -- 0 = standard LDA, 1 = Euclidean WLDA, 2 = Mahalanobis WLDA.
        wlda_n {int} -- Exponent of the WLDA weighting function.

    Returns:
        torch.Tensor -- Linear part of the transform (T applied first, then projection to the top between-class directions).
    """
    dim = data.size()[1]
    _check_lda_dim(lda_dim, dim)
    weighted = lda_variation in (WLDA_EUCLIDEAN, WLDA_MAHALANOBIS)

    stats = CovarianceStats(dim, device=data.device)
    spk_data = [data[indices, :] for indices in spk2indices.values()]

    print('Computing within-class covariance.')
    for utts_of_this_spk in spk_data:
        stats.acc_stats(utts_of_this_spk)

    print('Stats have {}'.format(stats.info()))
    if stats.empty():
        raise InsufficientDataError('Every speaker has a single utterance; no within-class variation ({})'.format(stats.info().strip()))
    if stats.singular_tot_covar():
        raise InsufficientDataError('Too little data for iVector dimension ({} utterances, dimension {}).'.format(stats.num_utt, dim))

    if weighted:
        print('Running WLDA variation: {}'.format(lda_variation))
        # Weighted within scatter (not normalized by the number of utterances)
        for index, utts_of_spk in enumerate(spk_data):
            print('Calculating within scatter: {}'.format(index))
            stats.acc_weighted_stats_within(utts_of_spk)

        # Weighted between scatter over speaker pairs i < j
        # Mahalanobis weights invert the within scatter, so it has to be complete here.
        for i in range(len(spk_data) - 1):
            print('Calculating between scatter: {}'.format(i))
            for j in range(i + 1, len(spk_data)):
                stats.acc_weighted_stats(spk_data[i], spk_data[i].size()[0], spk_data[j], spk_data[j].size()[0], lda_variation, wlda_n)
        if stats.num_coincident_pairs > 0:
            print('[WARNING] {} speaker pairs with identical means were skipped.'.format(stats.num_coincident_pairs))

    total_covar = stats.get_total_covar()
    within_covar = stats.get_within_covar()

    if weighted:
        print('Projecting weighted within class covariance')
        mat_to_normalize = stats.get_within_covar_weighted()
        between_covar = stats.get_between_covar_weighted()
    else:
        mat_to_normalize = total_covariance_factor * total_covar + (1.0 - total_covariance_factor) * within_covar
        between_covar = total_covar - within_covar

    T = compute_normalizing_transform(mat_to_normalize, covariance_floor)[0]

    between_covar_proj = torch.linalg.multi_dot((T, between_covar, T.t()))
    between_covar_proj = 0.5 * (between_covar_proj + between_covar_proj.t())

    s, U = torch.linalg.eigh(between_covar_proj)
    s = s.flip(0)
    U = U.flip(1)

    print('Singular values of between-class covariance after projecting with interpolated [total/within] covariance '
          'with a weight of {} on the total covariance, are: {}'.format(total_covariance_factor, format_vector(s)))

    # Whiten with T, then keep the lda_dim directions of largest between-class variance
    U_part = U[:, :lda_dim]
    return torch.matmul(U_part.t(), T)


def _test_transform(lda_dim: int, dim: int, wlda_n: int, seed: int) -> torch.Tensor:
    # Debug transform, independent of the data
    print('LDA test case, replacing LDA mat')
    if wlda_n == _DEFAULT_WLDA_N:
        generator = torch.Generator().manual_seed(seed)
        return torch.rand(lda_dim, dim + 1, generator=generator)
    return torch.zeros(lda_dim, dim + 1)


def _check_lda_dim(lda_dim: int, dim: int):
    if not 1 <= lda_dim <= dim:
        raise ConfigurationError('LDA dimension should be between 1 and the vector dimension {}, got {}'.format(dim, lda_dim))
