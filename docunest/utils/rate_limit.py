from slowapi import Limiter
from slowapi.util import get_remote_address

from docunest.config import get_settings

# One limiter for the whole app; main.py attaches it to app.state
limiter = Limiter(key_func=get_remote_address, enabled=get_settings().rate_limit_enabled)
