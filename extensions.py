from flask_sqlalchemy import SQLAlchemy
from flask_mail import Mail
from flask_migrate import Migrate
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

db = SQLAlchemy()
mail = Mail()
migrate = Migrate()

# In-memory rate limiter (sufficient for single-instance deployments).
# Disabled through RATELIMIT_ENABLED / DISABLE_RATE_LIMITING.
limiter = Limiter(get_remote_address, storage_uri="memory://")
