# Copyright 2020 Ville Vestman
# This file is licensed under the MIT license (see LICENSE.txt).

# Main script for ivector_lda recipe.

import sys
import os
# Adding the project root to the path to make imports to work regardless from where this file was executed:
sys.path.append(os.path.dirname(os.path.abspath(__file__)).rsplit('wldatorch', 1)[0])
from dataclasses import dataclass

import torch

from wldatorch.src.settings.abstract_settings import AbstractSettings
from wldatorch.src.settings.settings import Settings
from wldatorch.src.utterances.embedding_list import EmbeddingList
from wldatorch.src.backend.lda import Lda
from wldatorch.src.misc.exceptions import LdaError
import wldatorch.src.misc.fileutils as fileutils

@dataclass
class RecipeSettings(AbstractSettings):
    start_stage: int = 0
    end_stage: int = 100
    ivector_rspecifier: str = 'ark:ivectors.ark'
    utt2spk_rspecifier: str = 'ark:utt2spk'
    lda_name: str = 'lda'

# Initializing settings:
Settings(os.path.join(fileutils.get_folder_of_file(__file__), 'configs', 'init_config.py'))

# Add recipe settings to Settings() (these settings may not be reusable enough to be included in settings.py)
Settings().recipe = RecipeSettings()

# Get full path of run config file:
run_config_file = os.path.join(fileutils.get_folder_of_file(__file__), 'configs', 'run_configs.py')

# Get run configs from command line arguments
run_configs = sys.argv[1:]
if not run_configs:
    sys.exit('Give one or more run configs as argument(s)!')

Settings().print()

try:
    # Run config loop:
    for settings_string in Settings().load_settings(run_config_file, run_configs):

        # LDA training, stage 1
        if Settings().recipe.start_stage <= 1 <= Settings().recipe.end_stage:
            training_data, _ = EmbeddingList.from_kaldi(Settings().recipe.ivector_rspecifier, Settings().recipe.utt2spk_rspecifier)
            print('{}: {} utterances from {} speakers'.format(training_data.name, len(training_data), training_data.get_number_of_speakers()))
            lda = Lda.train(training_data.embeddings, training_data.get_spk_labels(), Settings().lda.lda_dim, Settings().computing.device)
            lda.save(fileutils.get_lda_output_file(Settings().recipe.lda_name), Settings().lda.binary)

        # Transform check, stage 2
        if Settings().recipe.start_stage <= 2 <= Settings().recipe.end_stage:
            training_data, _ = EmbeddingList.from_kaldi(Settings().recipe.ivector_rspecifier, Settings().recipe.utt2spk_rspecifier)
            lda = Lda.load(fileutils.get_lda_output_file(Settings().recipe.lda_name), Settings().computing.device)
            projected = lda.transform(training_data.embeddings)
            print('{}: projected {} vectors to dimension {} (2-norm of mean = {:.4f})'.format(
                Settings().recipe.lda_name, projected.size()[0], lda.lda_dim, torch.norm(torch.mean(projected, dim=0)).item()))

except LdaError as e:
    sys.exit('ERROR: {}'.format(e))

print('All done!')
