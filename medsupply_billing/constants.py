APP_NAME = "MedSupply Billing"

DATA_DIR = "data"
DB_FILE_NAME = "medsupply.db"
DB_PATH_ENV = "MEDSUPPLY_DB_PATH"

TABLE_SCHEMA_VERSION = "schema_version"
SCHEMA_VERSION = "1.0.0"

# one cent; stored vs. derived amounts closer than this are considered equal
MONEY_TOLERANCE = 0.01
MONEY_PLACES = 2

CURRENCY_CODE = "KES"
CURRENCY_SYMBOL = "KSh"

PACKAGE_LOGGER = "medsupply_billing"
LOG_LEVEL_ENV = "MEDSUPPLY_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
