from enum import Enum

DEFAULT_MODEL_NAME = "google/gemini-2.5-flash-lite"

BATCH_QUEUE = "prediction_batches"
RECOVERY_QUEUE = "session_recovery"

RUN_BATCH_TASK = "run_prediction_batch"
SCHEDULED_BATCH_TASK = "generate_scheduled_batches"
RECOVERY_TASK = "recover_prediction_sessions"


class EnumEnvironment(str, Enum):
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class EnumLogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"
