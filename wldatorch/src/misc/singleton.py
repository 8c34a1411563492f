# Copyright 2020 Ville Vestman
# This file is licensed under the MIT license (see LICENSE.txt).

class Singleton(type):
    _instances = {}

    def __call__(cls, *args, **kwargs):
        if cls not in cls._instances:
            cls._instances[cls] = super().__call__(*args, **kwargs)
        return cls._instances[cls]

    @classmethod
    def clear(mcs):
        """Forgets all instances so that the next call creates fresh objects."""
        mcs._instances.clear()
