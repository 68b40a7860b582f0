"""
Shared rate limiter; disabled in tests via ``limiter.enabled = False``.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)
