from __future__ import annotations


class MalformedDataError(ValueError):
    pass


class ShortVecError(MalformedDataError):
    pass


class ALTSizeError(MalformedDataError):
    def __init__(self, current_len: int, min_len: int):
        super().__init__(current_len, min_len)
        self._current_len = current_len
        self._min_len = min_len

    def __str__(self) -> str:
        return f'Lookup table data is too short {self._current_len} < {self._min_len}'


class ALTContentError(MalformedDataError):
    def __init__(self, msg: str):
        super().__init__(msg)
        self._msg = msg

    def __str__(self) -> str:
        return f'Lookup table is invalid: {self._msg}'


class SolMsgDecodeError(MalformedDataError):
    pass


class ALTError(RuntimeError):
    pass


class ALTResolveError(ALTError):
    pass


class SolTxError(RuntimeError):
    pass


class SolTxSizeError(SolTxError):
    def __init__(self, current_len: int, max_len: int):
        super().__init__(current_len, max_len)
        self._current_len = current_len
        self._max_len = max_len

    @property
    def current_len(self) -> int:
        return self._current_len

    @property
    def max_len(self) -> int:
        return self._max_len

    def __str__(self) -> str:
        return f'Transaction size is exceeded {self._current_len} > {self._max_len}'


class SolTxDecodeError(RuntimeError):
    pass
