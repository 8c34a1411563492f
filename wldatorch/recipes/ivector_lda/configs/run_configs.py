# pylint: skip-file

# Input i-vectors (Kaldi tables) used by all run configs
data
recipe.ivector_rspecifier = 'scp:/media/ssd2/vvestman/ivector_lda_outputs/ivector_400/ivectors/ivector.scp'
recipe.utt2spk_rspecifier = 'ark:/media/ssd2/vvestman/ivector_lda_outputs/datasets/voxceleb1/utt2spk'

# Standard LDA (normalizes within-class covariance)
lda < data
recipe.start_stage = 1
recipe.end_stage = 2
recipe.lda_name = 'lda_200'
lda.lda_variation = 0

# Standard LDA, normalizing an interpolated total/within-class covariance
lda_tcf < lda
recipe.lda_name = 'lda_200_tcf_0.1'
lda.total_covariance_factor = 0.1

# Weighted LDA with Euclidean distance weighting
wlda_euc < lda
recipe.lda_name = 'wlda_euc_200'
lda.lda_variation = 1
lda.wlda_n = 4

# Weighted LDA with Mahalanobis distance weighting
wlda_mah < wlda_euc
recipe.lda_name = 'wlda_mah_200'
lda.lda_variation = 2

# Only checks the saved transforms
check_wlda_mah < wlda_mah
recipe.start_stage = 2
