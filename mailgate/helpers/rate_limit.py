"""Rate Limiter (Flask-Limiter), wird in create_app() via init_app() gebunden.

Global: RATELIMIT_DEFAULT (100 per minute)
Live-Probes (POST /email/account, POST /email/test): PROBE_LIMIT
"""

from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

PROBE_LIMIT = "10 per minute"

limiter = Limiter(key_func=get_remote_address)
