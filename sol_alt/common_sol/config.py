import os
import logging

from decimal import Decimal
from typing import Optional, Union

from .constants import PACKET_DATA_SIZE

LOG = logging.getLogger(__name__)


class Config:
    _log_level_list = ('CRITICAL', 'ERROR', 'WARNING', 'INFO', 'DEBUG')

    def __init__(self):
        self._max_tx_size = self._env_num('MAX_TX_SIZE', PACKET_DATA_SIZE, 128, 65535)
        self._check_alt_owner = self._env_bool('CHECK_ALT_OWNER', True)
        self._allow_deactivated_alt = self._env_bool('ALLOW_DEACTIVATED_ALT', False)

        self._log_level = self._env_log_level('LOG_LEVEL', 'INFO')
        self._log_json_format = self._env_bool('LOG_JSON_FORMAT', True)

    @staticmethod
    def _env_bool(name: str, default_value: bool) -> bool:
        true_value_list = ('YES', 'ON', 'TRUE')
        false_value_list = ('NO', 'OFF', 'FALSE')

        value = os.environ.get(name, true_value_list[0] if default_value else false_value_list[0]).upper().strip()
        if (value not in true_value_list) and (value not in false_value_list):
            LOG.error(f'{name} cannot be: {true_value_list} or {false_value_list}')
            return default_value

        return value in true_value_list

    @staticmethod
    def _env_num(
        name: str, default_value: Union[int, Decimal],
        min_value: Optional[Union[int, Decimal]] = None,
        max_value: Optional[Union[int, Decimal]] = None
    ) -> Union[int, Decimal]:
        value = os.environ.get(name, None)
        if value is None:
            return default_value

        try:
            if isinstance(default_value, int):
                value = int(value, base=10)
            else:
                value = Decimal(value)

            if (min_value is not None) and (value < min_value):
                LOG.error(f'{name} cannot be less than min value {min_value}')
                value = min_value
            elif (max_value is not None) and (value > max_value):
                LOG.error(f'{name} cannot be bigger than max value {max_value}')
                value = max_value
            return value

        except (ValueError, ArithmeticError):
            LOG.error(f'Bad value for {name}, force to use default value {default_value}')
            return default_value

    @classmethod
    def _env_log_level(cls, name: str, default_value: str) -> str:
        value = os.environ.get(name, default_value).upper().strip()
        if value not in cls._log_level_list:
            LOG.error(f'{name} should be one of {cls._log_level_list}, force to use default value {default_value}')
            return default_value
        return value

    ###################
    # Transaction settings

    @property
    def max_tx_size(self) -> int:
        return self._max_tx_size

    ###################
    # Address lookup table settings

    @property
    def check_alt_owner(self) -> bool:
        return self._check_alt_owner

    @property
    def allow_deactivated_alt(self) -> bool:
        return self._allow_deactivated_alt

    ###################
    # Logging settings

    @property
    def log_level(self) -> str:
        return self._log_level

    @property
    def log_json_format(self) -> bool:
        return self._log_json_format

    def as_dict(self) -> dict:
        return {
            'MAX_TX_SIZE': self.max_tx_size,

            'CHECK_ALT_OWNER': self.check_alt_owner,
            'ALLOW_DEACTIVATED_ALT': self.allow_deactivated_alt,

            'LOG_LEVEL': self.log_level,
            'LOG_JSON_FORMAT': self.log_json_format,
        }
