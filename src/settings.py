from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
import logging
import os
import yaml

from durations import DEFAULT_DURATION, parse_duration
from timestamps import set_local_timezone



CONFIG_ENV_VAR = 'DTRMGR_CONFIG'
DEFAULT_CONFIG_PATH = Path('~/.config/dtrmgr/config.yaml')

_LOG_LEVELS = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}



@dataclass
class Settings:
    '''Defaults for the command line.'''

    duration: int = DEFAULT_DURATION
    timezone: str | None = None
    validate: bool = False
    log_level: str = 'WARNING'


    @classmethod
    def from_dict(cls, data: dict) -> Settings:
        '''Builds settings from a mapping, checking every known key.'''

        unknown = set(data) - {'duration', 'timezone', 'validate', 'log_level'}
        if unknown:
            raise ValueError(f'Unknown settings: {", ".join(sorted(unknown))}.')

        settings = cls()

        duration = data.get('duration')
        if duration is not None:
            if isinstance(duration, bool):
                raise ValueError('\'duration\' must be a number of seconds or a duration string.')
            if isinstance(duration, int):
                if duration <= 0:
                    raise ValueError('\'duration\' must be positive.')
                settings.duration = duration
            elif isinstance(duration, str):
                settings.duration = parse_duration(duration)
            else:
                raise ValueError('\'duration\' must be a number of seconds or a duration string.')

        timezone = data.get('timezone')
        if timezone is not None:
            if not isinstance(timezone, str):
                raise ValueError('\'timezone\' must be an IANA time zone name.')
            settings.timezone = timezone

        validate = data.get('validate')
        if validate is not None:
            if not isinstance(validate, bool):
                raise ValueError('\'validate\' must be a boolean.')
            settings.validate = validate

        log_level = data.get('log_level')
        if log_level is not None:
            if not isinstance(log_level, str) or log_level.upper() not in _LOG_LEVELS:
                raise ValueError(
                    f'\'log_level\' must be one of {", ".join(sorted(_LOG_LEVELS))}.'
                )
            settings.log_level = log_level.upper()

        return settings


    @classmethod
    def load_from_yaml(cls, filename: str | Path) -> Settings:
        '''Load settings from YAML file.'''

        path = Path(filename).expanduser()

        with path.open('r', encoding='utf-8') as f:
            data = yaml.safe_load(f)

        # An empty file means defaults.
        if data is None:
            return cls()

        if not isinstance(data, dict):
            raise ValueError('YAML root must be a mapping.')

        return cls.from_dict(data)


    @classmethod
    def locate(cls, filename: str | Path | None = None) -> Settings:
        '''Loads the settings from 'filename', else from the file named
        by the 'DTRMGR_CONFIG' environment variable, else from
        '~/.config/dtrmgr/config.yaml' if it exists. Falls back
        to defaults.'''

        if filename is not None:
            return cls.load_from_yaml(filename)

        from_env = os.environ.get(CONFIG_ENV_VAR)
        if from_env:
            return cls.load_from_yaml(from_env)

        default = DEFAULT_CONFIG_PATH.expanduser()
        if default.is_file():
            return cls.load_from_yaml(default)

        return cls()


    def apply(self) -> None:
        '''Applies the process-wide parts of the settings: the time zone
        for date-time text and the logging level. Without a configured
        time zone, the current one is left in place.'''

        if self.timezone is not None:
            set_local_timezone(self.timezone)
        configure_logging(self.log_level)



def configure_logging(level: str | int = logging.WARNING) -> None:
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )
    logging.getLogger().setLevel(level)
