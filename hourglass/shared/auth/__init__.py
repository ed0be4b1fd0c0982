from .auth import (
    get_current_user,
    decode_token,
    resolve_role
)

__all__ = [
    'get_current_user',
    'decode_token',
    'resolve_role'
]
