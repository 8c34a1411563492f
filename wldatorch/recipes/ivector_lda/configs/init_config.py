# pylint: skip-file

computing.use_gpu = False
computing.gpu_id = 0

paths.output_folder = '/media/ssd2/vvestman/ivector_lda_outputs'
paths.system_folder = 'ivector_400'

lda.lda_dim = 200
lda.covariance_floor = 1.0e-06
lda.binary = True
