# Copyright 2020 Ville Vestman
# This file is licensed under the MIT license (see LICENSE.txt).

from typing import Optional

import torch

from wldatorch.src.misc.exceptions import DimensionMismatchError, InsufficientDataError, SingularMatrixError, NonFiniteWeightError
from wldatorch.src.misc.miscutils import test_finiteness

LDA_TEST = -1
LDA_STANDARD = 0
WLDA_EUCLIDEAN = 1
WLDA_MAHALANOBIS = 2


class CovarianceStats:
    """Accumulates total, between-class and (weighted LDA) within/between-class scatter of speaker grouped vectors.

    All matrices are kept in double precision and symmetric. The getters normalize by the number of
    utterances (except get_within_covar_weighted(), which returns the raw scatter).
    """

    def __init__(self, dim: int, device=torch.device('cpu')):
        self.tot_covar = torch.zeros(dim, dim, dtype=torch.float64, device=device)
        self.between_covar = torch.zeros(dim, dim, dtype=torch.float64, device=device)
        self.between_covar_weighted = torch.zeros(dim, dim, dtype=torch.float64, device=device)
        self.within_covar_weighted = torch.zeros(dim, dim, dtype=torch.float64, device=device)
        self.num_spk = 0
        self.num_utt = 0
        self.num_coincident_pairs = 0
        self._inv_within_covar_weighted = None  # Cleared whenever within_covar_weighted changes

    def dim(self) -> int:
        return self.tot_covar.size()[0]

    def get_total_covar(self) -> torch.Tensor:
        self._check_degrees_of_freedom()
        return self.tot_covar / self.num_utt

    def get_within_covar(self) -> torch.Tensor:
        self._check_degrees_of_freedom()
        return (self.tot_covar - self.between_covar) / self.num_utt

    def get_within_covar_weighted(self) -> torch.Tensor:
        self._check_degrees_of_freedom()
        return self.within_covar_weighted.clone()

    def get_between_covar_weighted(self) -> torch.Tensor:
        self._check_degrees_of_freedom()
        return self.between_covar_weighted / self.num_utt

    def acc_stats(self, utts_of_this_spk: torch.Tensor):
        utts_of_this_spk = self._prepare_group(utts_of_this_spk)
        num_utts = utts_of_this_spk.size()[0]
        _add_symmetric_(self.tot_covar, torch.matmul(utts_of_this_spk.t(), utts_of_this_spk))
        spk_average = utts_of_this_spk.mean(dim=0)
        self.between_covar += num_utts * torch.outer(spk_average, spk_average)
        self.num_utt += num_utts
        self.num_spk += 1

    def acc_weighted_stats_within(self, utts_of_spk: torch.Tensor):
        """Adds SUM_i (w_i^s - w_s)(w_i^s - w_s)^T of one speaker to the weighted within-class scatter."""
        utts_of_spk = self._prepare_group(utts_of_spk)
        centered = utts_of_spk - utts_of_spk.mean(dim=0)
        _add_symmetric_(self.within_covar_weighted, torch.matmul(centered.t(), centered))
        self._inv_within_covar_weighted = None

    def acc_weighted_stats(self, utts_of_spk_i: torch.Tensor, n_i: int, utts_of_spk_j: torch.Tensor, n_j: int, lda_variation: int, wlda_n: int):
        """Adds w(d_ij) n_i n_j (w_i - w_j)(w_i - w_j)^T to the weighted between-class scatter.

        With Mahalanobis weighting the weighted within-class scatter is inverted, so the within-class
        accumulation of all speakers has to be completed before this is called.

        Arguments:
            utts_of_spk_i {torch.Tensor} -- Vectors of speaker i (as rows).
            n_i {int} -- Number of utterances of speaker i.
            utts_of_spk_j {torch.Tensor} -- Vectors of speaker j (as rows).
            n_j {int} -- Number of utterances of speaker j.
            lda_variation {int} -- 1 = Euclidean distance weighting, 2 = Mahalanobis distance weighting, otherwise w = 1.
            wlda_n {int} -- Exponent n in w(d) = d^(-n).
        """
        spk_i_average = self._prepare_group(utts_of_spk_i).mean(dim=0)
        spk_j_average = self._prepare_group(utts_of_spk_j).mean(dim=0)
        spk_diff = spk_i_average - spk_j_average

        w = 1.0
        if lda_variation == WLDA_EUCLIDEAN:
            w = self._euclidean_distance_weight(spk_diff, wlda_n)
        elif lda_variation == WLDA_MAHALANOBIS:
            w = self._mahalanobis_distance_weight(spk_diff, wlda_n)
        if w is None:
            return

        weight = w * n_i * n_j
        self.between_covar_weighted += weight * torch.outer(spk_diff, spk_diff)

    def singular_tot_covar(self) -> bool:
        return self.num_utt < self.dim()

    # No speaker has more than one utterance.
    def empty(self) -> bool:
        return self.num_utt - self.num_spk == 0

    def info(self) -> str:
        return '{} speakers, {} utterances. '.format(self.num_spk, self.num_utt)

    def add_stats(self, other: 'CovarianceStats'):
        if other.dim() != self.dim():
            raise DimensionMismatchError('Cannot add statistics of dimension {} to statistics of dimension {}'.format(other.dim(), self.dim()))
        self.tot_covar += other.tot_covar.to(self.tot_covar.device)
        self.between_covar += other.between_covar.to(self.between_covar.device)
        self.num_spk += other.num_spk
        self.num_utt += other.num_utt

    def _check_degrees_of_freedom(self):
        if self.num_utt - self.num_spk <= 0:
            raise InsufficientDataError('No within-speaker variation in the statistics ({})'.format(self.info().strip()))

    def _prepare_group(self, utts: torch.Tensor) -> torch.Tensor:
        if utts.dim() != 2 or utts.size()[0] == 0:
            raise InsufficientDataError('A speaker must have at least one utterance (got a tensor of size {})'.format(tuple(utts.size())))
        if utts.size()[1] != self.dim():
            raise DimensionMismatchError('Vector dimension mismatch: expected {}, got {}'.format(self.dim(), utts.size()[1]))
        return utts.to(device=self.tot_covar.device, dtype=torch.float64)

    def _euclidean_distance_weight(self, spk_diff: torch.Tensor, n: int) -> Optional[float]:
        # squared distance between speaker means
        distance = torch.dot(spk_diff, spk_diff).item()
        return self._distance_to_weight(distance, n)

    def _mahalanobis_distance_weight(self, spk_diff: torch.Tensor, n: int) -> Optional[float]:
        # diff^T inv(within scatter) diff
        if self._inv_within_covar_weighted is None:
            within_covar = self.get_within_covar_weighted()
            inverse, info = torch.linalg.inv_ex(within_covar)
            if info.item() != 0 or not test_finiteness(inverse, 'Inverse of weighted within-class covariance'):
                raise SingularMatrixError('Weighted within-class covariance is singular; accumulate the within-class statistics of all speakers before Mahalanobis weighting')
            self._inv_within_covar_weighted = inverse
        distance = torch.dot(torch.mv(self._inv_within_covar_weighted, spk_diff), spk_diff).item()
        return self._distance_to_weight(distance, n)

    def _distance_to_weight(self, distance: float, n: int) -> Optional[float]:
        if distance == 0:
            # diff diff^T is zero here
            self.num_coincident_pairs += 1
            print('[WARNING] Two speakers have identical mean vectors; skipping the pair in weighted between-class scatter.')
            return None
        try:
            w = distance ** -n
        except OverflowError:
            w = float('inf')
        if not test_finiteness(torch.tensor(w), 'Weight of a speaker pair'):
            raise NonFiniteWeightError('Weight of a speaker pair is not finite (distance = {}, n = {})'.format(distance, n))
        return w


def _add_symmetric_(target: torch.Tensor, matrix: torch.Tensor):
    target += 0.5 * (matrix + matrix.t())
