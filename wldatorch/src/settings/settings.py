# Copyright 2020 Ville Vestman
# This file is licensed under the MIT license (see LICENSE.txt).

from dataclasses import dataclass, field

import torch
import torch.cuda

from wldatorch.src.settings.abstract_settings import AbstractSettings

# Edit configs using separate (recipe specific) settings files unless you want to the change the default values permanently.

@dataclass
class PathSettings(AbstractSettings):
    output_folder: str = '/all/the/system/outputs/go/here/'
    system_folder: str = 'system1'  # Relative folder for system (contains the LDA matrices, etc...)

@dataclass
class ComputingSettings(AbstractSettings):
    use_gpu: bool = False  # If false, then use CPU
    gpu_id: int = 0
    device: torch.device = field(default=torch.device('cpu'), init=False)  # Automatically set.

@dataclass
class LdaSettings(AbstractSettings):
    lda_dim: int = 100  # Dimension we keep with the LDA transform
    total_covariance_factor: float = 0.0  # 0.0 --> normalize within-class covariance, 1.0 --> total covariance, between --> interpolated matrix
    covariance_floor: float = 1.0e-06  # Eigenvalues of the normalized matrix are floored to (largest eigenvalue * covariance_floor)
    lda_variation: int = 0  # -1 = test case only (garbage transform), 0 = standard LDA, 1 = WLDA (Euclidean weighting), 2 = WLDA (Mahalanobis weighting)
    wlda_n: int = 4  # Exponent n of the WLDA weighting function w(d) = d^(-n)
    binary: bool = True  # Write output matrices in Kaldi binary format
    test_seed: int = 0  # Seed of the random transform produced by the test variation

@dataclass
class Settings(AbstractSettings):
    init_settings_file: str = None
    paths: PathSettings = field(default_factory=lambda: PathSettings(), init=False)
    computing: ComputingSettings = field(default_factory=lambda: ComputingSettings(), init=False)
    lda: LdaSettings = field(default_factory=lambda: LdaSettings(), init=False)

    def __post_init__(self):
        # Initial settings
        if self.init_settings_file is not None:
            self.set_initial_settings(self.init_settings_file)

    def post_update_call(self):
        # Set device
        self.computing.device = torch.device('cpu')
        if self.computing.use_gpu:
            if torch.cuda.is_available():
                self.computing.device = torch.device('cuda:{}'.format(self.computing.gpu_id))
                torch.cuda.set_device(self.computing.device)
                print('Using GPU (gpu_id = {})!'.format(self.computing.gpu_id))
            else:
                print('Cuda is not available! Using CPU!')
