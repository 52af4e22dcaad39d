from __future__ import annotations

import functools

from typing import Sequence


def cached_method(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        self = args[0]
        try:
            return getattr(self, wrapper._cached_value_name)
        except AttributeError:
            pass

        value = func(*args, **kwargs)
        object.__setattr__(self, wrapper._cached_value_name, value)
        return value

    def reset_cache(self):
        if hasattr(self, wrapper._cached_value_name):
            object.__delattr__(self, wrapper._cached_value_name)

    wrapper._cached_value_name = '_cached_' + wrapper.__name__
    wrapper.reset_cache = reset_cache
    return wrapper


cached_property = functools.cached_property


def str_key_list(key_list: Sequence) -> str:
    return '[' + ', '.join(str(key) for key in key_list) + ']'
