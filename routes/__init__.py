from . import auth
from . import users
from . import plans
from . import chats

__all__ = [
    "auth",
    "users",
    "plans",
    "chats",
]
