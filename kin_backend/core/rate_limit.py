from slowapi import Limiter
from slowapi.util import get_remote_address

# shared by the route decorators; create_app binds it to the app and sets `enabled`
limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")

# per client address, on the routes that create accounts or sessions for staff
AUTH_RATE_LIMIT = "10 per 15 minutes"
