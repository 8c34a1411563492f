# Copyright 2020 Ville Vestman
# This file is licensed under the MIT license (see LICENSE.txt).

from dataclasses import dataclass
from functools import reduce
from collections import namedtuple
from typing import Dict, Iterator, List
import ast

from wldatorch.src.misc.singleton import Singleton
from wldatorch.src.misc.exceptions import ConfigurationError

Setting = namedtuple('Setting', ['obj', 'attr', 'value'])

@dataclass
class AbstractSettings(metaclass=Singleton):

    def set_initial_settings(self, setting_file: str):
        print('Initializing settings using a settings file: {}'.format(setting_file))
        for line in _read_setting_lines(setting_file):
            if line:
                setting = self._parse_setting(line)
                setattr(setting.obj, setting.attr, setting.value)
        self.post_update_call()

    def print(self):
        print(str(self))

    def _setting_lines(self, prefix: str = '') -> List[str]:
        lines = []
        for name, value in vars(self).items():
            if isinstance(value, AbstractSettings):
                lines.append('')
                lines.extend(value._setting_lines(prefix + name + '.'))
            else:
                lines.append('{}{} = {}'.format(prefix, name, value))
        return lines

    def __str__(self):
        return '\n'.join(self._setting_lines())

    def load_settings(self, setting_file: str, setting_names: List[str]) -> Iterator[str]:
        """Applies the named run configs of a settings file one after another.

        Run configs are separated by empty lines. The first line of a run config is its name,
        optionally followed by '< parent1 < parent2' to inherit assignments from earlier configs.
        The settings that were changed are restored before the next config is applied and after
        the last one.

        Arguments:
            setting_file {str} -- Run config file.
            setting_names {List[str]} -- Names of the run configs to apply (in order).

        Yields:
            str -- Human readable listing of the applied assignments.
        """
        print('Reading run configs {} from file {}'.format(setting_names, setting_file))

        run_configs = {}
        group = []
        for line in _read_setting_lines(setting_file) + ['']:
            if line:
                group.append(line)
            elif group:
                self._process_setting_group(run_configs, group)
                group = []

        missing = [name for name in setting_names if name not in run_configs]
        if missing:
            raise ConfigurationError('Run config(s) {} not found from the settings file {}'.format(missing, setting_file))

        for name in setting_names:
            print('Applying run config: {}'.format(name))
            assignments = run_configs[name]
            previous_values = self._get_settings(assignments)
            self._set_settings(assignments)
            self.post_update_call()
            try:
                listing = self.get_string(assignments, False)
                print(listing)
                yield listing
            finally:
                self._set_settings(previous_values)
                self.post_update_call()

    def _get_settings(self, settings: Dict[str, Setting]) -> Dict[str, Setting]:
        return {name: Setting(s.obj, s.attr, getattr(s.obj, s.attr)) for name, s in settings.items()}

    def _set_settings(self, settings: Dict[str, Setting]):
        for setting in settings.values():
            setattr(setting.obj, setting.attr, setting.value)

    def _process_setting_group(self, setting_groups: Dict[str, Dict[str, Setting]], lines: List[str]):
        settings = {}

        # Name and inheritance
        parts = [x.strip() for x in lines[0].split('<')]

        if parts[0] in setting_groups:
            raise ConfigurationError('Run config "{}" defined twice or more in the setting file. Remove the duplicates.'.format(parts[0]))

        for part in reversed(parts[1:]):
            if part not in setting_groups:
                raise ConfigurationError('Trying to inherit settings from "{}", which has not been defined yet'.format(part))
            settings.update(setting_groups[part])

        for line in lines[1:]:
            name = line.split('=', 1)[0].strip()
            settings[name] = self._parse_setting(line)

        setting_groups[parts[0]] = settings

    def _parse_setting(self, line: str) -> Setting:
        if '=' not in line:
            raise ConfigurationError('Malformed setting line (expected "name = value"): {}'.format(line))
        name, value = line.split('=', 1)
        name = name.strip()
        if '.' in name:
            obj, attr = name.rsplit('.', 1)
            try:
                obj = reduce(getattr, obj.split('.'), self)
            except AttributeError:
                raise ConfigurationError('Setting changer error --- "{}" does not name a settings group!'.format(obj)) from None
        else:
            obj = self
            attr = name
        _test_existence(obj, attr)
        value = value.split('#', 1)[0].strip()  # inline comments
        try:
            value = ast.literal_eval(value)
        except (ValueError, SyntaxError):
            raise ConfigurationError('Could not parse value "{}" of setting "{}"'.format(value, name)) from None
        return Setting(obj, attr, value)

    def get_string(self, settings: Dict[str, Setting], compact: bool = True) -> str:
        delimeter = '; ' if compact else '\n'
        return delimeter.join('{} = {}'.format(s, setting.value) for s, setting in settings.items())

    # Can be overridden in child classes
    def post_update_call(self):
        pass


def _read_setting_lines(setting_file: str) -> List[str]:
    # Comment lines are dropped, empty lines are kept as group separators.
    lines = []
    try:
        with open(setting_file) as f:
            for line in f:
                line = line.strip()
                if line.startswith('#'):
                    continue
                lines.append(line)
    except OSError as e:
        raise ConfigurationError('Cannot read settings file {}: {}'.format(setting_file, e.strerror or e)) from None
    return lines

def _test_existence(obj, attr):
    if not hasattr(obj, attr):
        raise ConfigurationError('Setting changer error --- attribute "{}" given in config file does not exist in "{}" class!'.format(attr, obj.__class__.__name__))
