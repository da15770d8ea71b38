import os
from core.log import logger

if os.environ.get("ENVIRONTMENT") != "os":
    logger.info("load env from file")
    from dotenv import load_dotenv

    load_dotenv()
else:
    logger.info("load env from os")


def str_to_bool(string: str) -> bool:
    if string in ["true", "TRUE", "True"]:
        return True
    elif string in ["false", "FALSE", "False"]:
        return False
    else:
        raise Exception(
            f"{string} is not boolean, ex input true -> true, True, TRUE, ex input false -> false, False, FALSE"
        )


# Environtment
ENVIRONTMENT = os.environ.get("ENVIRONTMENT")

# Deployment mode
DEPLOYMENT_MODE = os.environ.get("DEPLOYMENT_MODE", "development")

# JWT conf (admin sessions)
JWT_PREFIX = os.environ.get("JWT_PREFIX", "Bearer")
SECRET_KEY = os.environ.get("SECRET_KEY", "tickets_secret")
ALGORITHM = os.environ.get("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.environ.get("ACCESS_TOKEN_EXPIRE_MINUTES", 60))

# Timezone
TZ = os.environ.get("TZ", "Asia/Jerusalem")

# Postgresql conf
POSTGRES_USER = os.environ.get("POSTGRES_USER")
POSTGRES_PASSWORD = os.environ.get("POSTGRES_PASSWORD")
POSTGRES_HOST = os.environ.get("POSTGRES_HOST")
POSTGRES_PORT = os.environ.get("POSTGRES_PORT")
POSTGRES_DATABASE = os.environ.get("POSTGRES_DATABASE")

DATABASE_URL = os.environ.get("DATABASE_URL")
if DATABASE_URL is None:
    if POSTGRES_HOST:
        DATABASE_URL = f"postgresql+psycopg://{POSTGRES_USER}:{POSTGRES_PASSWORD}@{POSTGRES_HOST}:{POSTGRES_PORT}/{POSTGRES_DATABASE}"
    else:
        DATABASE_URL = "sqlite:///./tickets.db"

FRONTEND_BASE_URL = os.environ.get("FRONTEND_BASE_URL", "http://localhost:3000")

# Stripe conf
STRIPE_SECRET_KEY = os.environ.get("STRIPE_SECRET_KEY", "")
STRIPE_API_BASE_URL = os.environ.get("STRIPE_API_BASE_URL", "https://api.stripe.com")
STRIPE_WEBHOOK_SECRET = os.environ.get("STRIPE_WEBHOOK_SECRET")
STRIPE_WEBHOOK_TOLERANCE_SECONDS = int(
    os.environ.get("STRIPE_WEBHOOK_TOLERANCE_SECONDS", "300")
)

# Reservation conf
TICKET_CURRENCY = os.environ.get("TICKET_CURRENCY", "ILS")
# Stripe keeps a checkout session open for 24 hours unless told otherwise
TICKET_HOLD_EXPIRE_MINUTES = int(os.environ.get("TICKET_HOLD_EXPIRE_MINUTES", "1440"))
# can only lower the 4 seat limit of models.Ticket.MAX_SEATS
MAX_SEATS_PER_TICKET = int(os.environ.get("MAX_SEATS_PER_TICKET", "4"))
RESERVATION_MAX_RETRIES = int(os.environ.get("RESERVATION_MAX_RETRIES", "5"))
DEFAULT_LOCALE = os.environ.get("DEFAULT_LOCALE", "he")

# MAIL conf
MAIL_ENABLED = str_to_bool(os.environ.get("MAIL_ENABLED", "False"))
MAIL_USERNAME = os.environ.get("MAIL_USERNAME", "")
MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD", "")
MAIL_FROM = os.environ.get("MAIL_FROM", "test@example.com")
MAIL_PORT = int(os.environ.get("MAIL_PORT", "465"))
MAIL_SERVER = os.environ.get("MAIL_SERVER", "localhost")
MAIL_FROM_NAME = os.environ.get("MAIL_FROM_NAME", "")
MAIL_TLS = str_to_bool(os.environ.get("MAIL_TLS", "False"))
MAIL_SSL = str_to_bool(os.environ.get("MAIL_SSL", "True"))
USE_CREDENTIALS = str_to_bool(os.environ.get("USE_CREDENTIALS", "True"))
