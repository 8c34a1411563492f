# Copyright 2020 Ville Vestman
# This file is licensed under the MIT license (see LICENSE.txt).

import os

from wldatorch.src.settings.settings import Settings

def ensure_exists(folder: str):
    if folder:
        os.makedirs(folder, exist_ok=True)

def ensure_ext(filename: str, ext: str) -> str:
    ext = ext if ext.startswith('.') else '.' + ext
    return filename if filename.endswith(ext) else filename + ext

def get_lda_folder() -> str:
    """Folder of the LDA matrices of the current system (created if missing).

    Returns:
        str -- <output_folder>/<system_folder>/lda
    """
    folder = os.path.join(Settings().paths.output_folder, Settings().paths.system_folder, 'lda')
    ensure_exists(folder)
    return folder

def get_lda_output_file(lda_name: str) -> str:
    return os.path.join(get_lda_folder(), ensure_ext(lda_name, 'mat'))

def get_folder_of_file(filename: str) -> str:
    return os.path.dirname(os.path.abspath(filename))
